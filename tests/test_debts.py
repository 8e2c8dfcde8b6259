from datetime import date, datetime, timezone
import pytest
from fastapi.testclient import TestClient
from app.services import due_dates
from app.services.dates import add_months


@pytest.fixture
def payee_id(make_payee):
    return make_payee("Uncle Hassan")


def create_debt(client, headers, payee_id, **overrides):
    payload = {
        "owner_id": "sara",
        "payee_id": payee_id,
        "description": "Wedding gift loan",
        "amount": 90_000,
        "start_date": "2024-01-01",
        "due_date": "2024-06-01",
    }
    payload.update(overrides)
    r = client.post("/debts/", json=payload, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["debt_id"]


def test_single_payment_debt_keeps_its_due_date(client: TestClient, auth_headers, payee_id, make_account, balance_of):
    account_id = make_account(initial_balance=100_000)
    debt_id = create_debt(client, auth_headers, payee_id)

    debt = client.get(f"/debts/{debt_id}", headers=auth_headers).json()
    assert debt["next_due_date"] == "2024-06-01"

    r = client.post(f"/debts/{debt_id}/pay", json={"bank_account_id": account_id, "amount": 30_000},
                    headers=auth_headers)
    assert r.status_code == 200, r.text
    assert r.json()["remaining_amount"] == 60_000

    debt = client.get(f"/debts/{debt_id}", headers=auth_headers).json()
    assert debt["next_due_date"] == "2024-06-01"
    assert balance_of(account_id) == 70_000

    entries = client.get("/entries/", headers=auth_headers).json()
    [expense] = [e for e in entries if e["obligation_id"] == debt_id]
    assert expense["description"] == "Debt payment: Wedding gift loan"
    assert expense["payee_id"] == payee_id


def test_installment_debt_counts_payments(client, auth_headers, payee_id, make_account):
    account_id = make_account(initial_balance=100_000)
    debt_id = create_debt(client, auth_headers, payee_id, is_installment=True, due_date=None,
                          first_installment_date="2024-01-15", installment_amount=30_000,
                          number_of_installments=3)

    for expected in ("2024-01-15", "2024-02-15", "2024-03-15"):
        assert client.get(f"/debts/{debt_id}", headers=auth_headers).json()["next_due_date"] == expected
        r = client.post(f"/debts/{debt_id}/pay", json={"bank_account_id": account_id, "amount": 30_000},
                        headers=auth_headers)
        assert r.status_code == 200, r.text

    debt = client.get(f"/debts/{debt_id}", headers=auth_headers).json()
    assert debt["remaining_amount"] == 0
    assert debt["paid_installments"] == 3
    assert debt["next_due_date"] is None


def test_debt_without_schedule_is_rejected(client, auth_headers, payee_id):
    r = client.post("/debts/", json={
        "owner_id": "sara", "payee_id": payee_id, "description": "x", "amount": 10,
        "start_date": "2024-01-01", "is_installment": True,
    }, headers=auth_headers)
    assert r.status_code == 422


def test_debt_needs_a_known_payee(client, auth_headers):
    r = client.post("/debts/", json={
        "owner_id": "sara", "payee_id": "00000000-0000-0000-0000-000000000001", "description": "x",
        "amount": 10, "start_date": "2024-01-01", "due_date": "2024-02-01",
    }, headers=auth_headers)
    assert r.status_code == 404


def test_remaining_amount_matches_payment_history(client, auth_headers, payee_id, make_account):
    account_id = make_account(initial_balance=100_000)
    debt_id = create_debt(client, auth_headers, payee_id)

    ids = []
    for amount in (10_000, 20_000, 5_000):
        r = client.post(f"/debts/{debt_id}/pay", json={"bank_account_id": account_id, "amount": amount},
                        headers=auth_headers)
        ids.append(r.json()["payment_id"])
    client.delete(f"/debts/{debt_id}/payments/{ids[1]}", headers=auth_headers)

    debt = client.get(f"/debts/{debt_id}", headers=auth_headers).json()
    payments = client.get(f"/debts/{debt_id}/payments", headers=auth_headers).json()
    assert debt["remaining_amount"] == debt["amount"] - sum(p["amount"] for p in payments) == 75_000


def test_payment_id_from_another_debt_is_not_found(client, auth_headers, payee_id, make_account):
    account_id = make_account(initial_balance=100_000)
    first = create_debt(client, auth_headers, payee_id)
    second = create_debt(client, auth_headers, payee_id)
    r = client.post(f"/debts/{first}/pay", json={"bank_account_id": account_id, "amount": 1_000},
                    headers=auth_headers)

    r = client.delete(f"/debts/{second}/payments/{r.json()['payment_id']}", headers=auth_headers)
    assert r.status_code == 404


def test_debt_audit_trail(client, auth_headers, user, payee_id):
    debt_id = create_debt(client, auth_headers, payee_id)

    r = client.get("/audit/logs", params={"resource_type": "debts", "user_id": user["user_id"]},
                   headers=auth_headers)
    logs = r.json()
    assert [log["resource_id"] for log in logs] == [debt_id]
    assert "Wedding gift loan" in logs[0]["details"]


@pytest.fixture
def first_of_month(monkeypatch):
    """Pin the resolver's "today" to the first day of the current UTC month."""
    today = datetime.now(timezone.utc).date().replace(day=1)

    class PinnedDate(date):
        @classmethod
        def today(cls):
            return today

    monkeypatch.setattr(due_dates, "date", PinnedDate)
    return today


def test_open_ended_debt_follows_its_payment_day(client, auth_headers, payee_id, make_account, first_of_month):
    account_id = make_account(initial_balance=100_000)
    debt_id = create_debt(client, auth_headers, payee_id, is_installment=True, due_date=None,
                          payment_day=10, installment_amount=30_000)
    this_month = first_of_month.replace(day=10)

    assert client.get(f"/debts/{debt_id}", headers=auth_headers).json()["next_due_date"] == str(this_month)

    r = client.post(f"/debts/{debt_id}/pay", json={"bank_account_id": account_id, "amount": 30_000},
                    headers=auth_headers)
    assert r.status_code == 200, r.text

    # this month's installment is paid, so next month's is due
    next_month = str(add_months(this_month, 1))
    assert client.get(f"/debts/{debt_id}", headers=auth_headers).json()["next_due_date"] == next_month

    r = client.get("/due-dates/", headers=auth_headers)
    assert r.status_code == 200, r.text
    [deadline] = [d for d in r.json() if d["obligation_id"] == debt_id]
    assert deadline["due_date"] == next_month
    assert deadline["title"] == "Debt payment: Wedding gift loan"
    assert deadline["amount"] == 30_000
