# tests/conftest.py
import os
from uuid import uuid4

# --- Configure env for tests *before* importing app code ---
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AWS_REGION", "eu-west-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-household-ledger")
# Ensure we always have a bucket name for tests
os.environ.setdefault("S3_BUCKET", f"hl-test-{uuid4().hex}")

import pytest
from fastapi.testclient import TestClient
from moto import mock_aws
import boto3

# Import after env is set so settings reads the values above
from app.config import settings
import app.main as app

from app.services.auth import create_access_token
from app.services.storage import get_store


def _empty_bucket(s3, bucket_name: str):
    """Helper: delete all objects in the bucket."""
    if not bucket_name:
        return
    paginator = s3.get_paginator("list_objects_v2")
    for page in paginator.paginate(Bucket=bucket_name):
        for obj in page.get("Contents", []):
            s3.delete_object(Bucket=bucket_name, Key=obj["Key"])


@pytest.fixture(scope="session", autouse=True)
def aws_moto():
    """Global Moto for all tests (no real AWS calls)."""
    with mock_aws():
        get_store.cache_clear()
        yield
        get_store.cache_clear()


@pytest.fixture(scope="session", autouse=True)
def setup_s3(aws_moto):
    """Create the test bucket inside Moto."""
    bucket_name = settings.s3_bucket
    region = settings.aws_region
    s3 = boto3.client("s3", region_name=region)

    # us-east-1 doesn't need LocationConstraint; others do
    if region == "us-east-1":
        s3.create_bucket(Bucket=bucket_name)
    else:
        s3.create_bucket(
            Bucket=bucket_name,
            CreateBucketConfiguration={"LocationConstraint": region},
        )

    yield s3, bucket_name

    # Final cleanup
    _empty_bucket(s3, bucket_name)


@pytest.fixture(autouse=True)
def clean_bucket(setup_s3):
    """Ensure the bucket is empty before each test."""
    s3, bucket_name = setup_s3
    _empty_bucket(s3, bucket_name)
    yield


@pytest.fixture(scope="function")
def client():
    return TestClient(app.app)


@pytest.fixture
def household_id():
    return str(uuid4())


@pytest.fixture
def user(household_id):
    return {"user_id": f"user-{uuid4().hex[:6]}", "household_id": household_id, "owner_id": "sara"}


@pytest.fixture
def auth_headers(user):
    token = create_access_token({"sub": user["user_id"], "household_id": user["household_id"],
                                 "owner_id": user["owner_id"]})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_household_headers():
    token = create_access_token({"sub": "outsider", "household_id": str(uuid4())})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def store(household_id):
    return get_store().for_household(household_id)


@pytest.fixture
def make_account(client, auth_headers):
    def _make(initial_balance=100_000, account_type="checking", owner_id="sara", bank_name="Melli"):
        r = client.post("/accounts/", json={
            "owner_id": owner_id,
            "bank_name": bank_name,
            "account_number": "0101-22",
            "card_number": "6037-9911-2233-4455",
            "account_type": account_type,
            "initial_balance": initial_balance,
        }, headers=auth_headers)
        assert r.status_code == 200, r.text
        return r.json()["bank_account_id"]
    return _make


@pytest.fixture
def make_payee(client, auth_headers):
    def _make(name=None):
        r = client.post("/payees/", json={"name": name or f"payee-{uuid4().hex[:6]}"}, headers=auth_headers)
        assert r.status_code == 200, r.text
        return r.json()["payee_id"]
    return _make


@pytest.fixture
def make_category(client, auth_headers):
    def _make(name=None):
        r = client.post("/categories/", json={"name": name or f"cat-{uuid4().hex[:6]}"}, headers=auth_headers)
        assert r.status_code == 200, r.text
        return r.json()["category_id"]
    return _make


@pytest.fixture
def balance_of(client, auth_headers):
    def _balance(bank_account_id) -> int:
        r = client.get(f"/accounts/{bank_account_id}", headers=auth_headers)
        assert r.status_code == 200, r.text
        return r.json()["balance"]
    return _balance
