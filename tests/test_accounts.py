from fastapi.testclient import TestClient


def test_account_lifecycle(client: TestClient, auth_headers, make_account):
    account_id = make_account(initial_balance=250_000)

    r = client.get(f"/accounts/{account_id}", headers=auth_headers)
    assert r.status_code == 200
    account = r.json()
    assert account["balance"] == account["initial_balance"] == 250_000
    assert account["blocked_balance"] == 0

    r = client.put(f"/accounts/{account_id}", json={"bank_name": "Saman", "blocked_balance": 50_000},
                   headers=auth_headers)
    assert r.status_code == 200, r.text

    account = client.get(f"/accounts/{account_id}", headers=auth_headers).json()
    assert account["bank_name"] == "Saman"
    assert account["blocked_balance"] == 50_000

    history = client.get(f"/accounts/{account_id}/history", headers=auth_headers).json()
    assert [v["bank_name"] for v in history] == ["Saman", "Melli"]

    r = client.delete(f"/accounts/{account_id}", headers=auth_headers)
    assert r.status_code == 200
    assert client.get(f"/accounts/{account_id}", headers=auth_headers).status_code == 404
    assert client.get("/accounts/", headers=auth_headers).json() == []


def test_balance_cannot_be_edited_directly(client, auth_headers, make_account, balance_of):
    account_id = make_account(initial_balance=1_000)

    r = client.put(f"/accounts/{account_id}", json={"balance": 999_999}, headers=auth_headers)
    assert r.status_code == 400
    assert balance_of(account_id) == 1_000


def test_blocked_balance_cannot_exceed_balance(client, auth_headers, make_account):
    account_id = make_account(initial_balance=1_000)
    r = client.put(f"/accounts/{account_id}", json={"blocked_balance": 1_001}, headers=auth_headers)
    assert r.status_code == 400


def test_list_accounts_by_owner(client, auth_headers, make_account):
    make_account(owner_id="sara")
    shared = make_account(owner_id="shared")

    r = client.get("/accounts/", params={"owner_id": "shared"}, headers=auth_headers)
    assert [a["bank_account_id"] for a in r.json()] == [shared]
    assert len(client.get("/accounts/", headers=auth_headers).json()) == 2


def test_account_with_pending_check_cannot_be_deleted(client, auth_headers, make_account, make_payee):
    account_id = make_account()
    client.post("/checks/", json={
        "owner_id": "sara", "bank_account_id": account_id, "payee_id": make_payee(),
        "amount": 5_000, "issue_date": "2024-01-01", "due_date": "2024-02-01",
    }, headers=auth_headers)

    r = client.delete(f"/accounts/{account_id}", headers=auth_headers)
    assert r.status_code == 409
    assert client.get(f"/accounts/{account_id}", headers=auth_headers).status_code == 200


def test_unknown_account_is_404(client, auth_headers):
    r = client.get("/accounts/00000000-0000-0000-0000-000000000000", headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["detail"] == "Bank account not found"
