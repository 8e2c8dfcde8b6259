from fastapi.testclient import TestClient


def test_transfer_moves_money_atomically(client: TestClient, auth_headers, make_account, balance_of):
    source = make_account(initial_balance=10_000)
    target = make_account(initial_balance=2_000, account_type="savings")

    r = client.post("/transfers/", json={
        "from_bank_account_id": source, "to_bank_account_id": target, "amount": 3_000,
        "description": "savings",
    }, headers=auth_headers)
    assert r.status_code == 200, r.text
    assert r.json()["from_balance_after"] == 7_000
    assert r.json()["to_balance_after"] == 5_000

    assert balance_of(source) == 7_000
    assert balance_of(target) == 5_000

    [record] = client.get("/transfers/", params={"bank_account_id": target}, headers=auth_headers).json()
    assert record["from_balance_before"] == 10_000
    assert record["to_balance_before"] == 2_000


def test_transfer_over_available_balance_is_refused(client, auth_headers, make_account, balance_of):
    source = make_account(initial_balance=1_000)
    target = make_account(initial_balance=0)

    r = client.post("/transfers/", json={
        "from_bank_account_id": source, "to_bank_account_id": target, "amount": 1_001,
    }, headers=auth_headers)
    assert r.status_code == 400
    assert balance_of(source) == 1_000
    assert balance_of(target) == 0
    assert client.get("/transfers/", headers=auth_headers).json() == []


def test_transfer_to_same_account_is_refused(client, auth_headers, make_account):
    account_id = make_account()
    r = client.post("/transfers/", json={
        "from_bank_account_id": account_id, "to_bank_account_id": account_id, "amount": 1,
    }, headers=auth_headers)
    assert r.status_code == 400
