from datetime import date
from fastapi.testclient import TestClient


def test_summary_by_category_and_owner(client: TestClient, auth_headers, make_account, make_category):
    account_id = make_account(initial_balance=100_000)
    food = make_category("Food")

    def entry(type_, amount, entry_date, **extra):
        r = client.post("/entries/", json={
            "type": type_, "bank_account_id": account_id, "amount": amount, "entry_date": entry_date, **extra,
        }, headers=auth_headers)
        assert r.status_code == 200, r.text

    entry("income", 50_000, "2024-03-01")
    entry("expense", 8_000, "2024-03-05", category_id=food, expense_for="reza")
    entry("expense", 2_000, "2024-04-02", category_id=food)
    entry("expense", 1_000, "2023-12-31")

    r = client.get("/summaries/summary", params={"start": "2024-01-01", "end": "2024-12-31"}, headers=auth_headers)
    assert r.status_code == 200, r.text
    summary = r.json()

    assert summary["income"] == 50_000
    assert summary["expense"] == 10_000
    assert summary["net"] == 40_000
    assert summary["by_category"]["Food"] == {"income": 0, "expense": 10_000}
    assert summary["by_category"]["uncategorized"] == {"income": 50_000, "expense": 0}
    assert summary["by_owner"]["reza"] == {"income": 0, "expense": 8_000}
    assert summary["by_owner"]["sara"] == {"income": 50_000, "expense": 2_000}
    assert summary["monthly"] == [
        {"month": "2024-03", "income": 50_000, "expense": 8_000},
        {"month": "2024-04", "income": 0, "expense": 2_000},
    ]


def test_summary_for_a_named_period(client, auth_headers, make_account):
    account_id = make_account(initial_balance=0)
    client.post("/entries/", json={
        "type": "income", "bank_account_id": account_id, "amount": 700, "entry_date": str(date.today()),
    }, headers=auth_headers)

    summary = client.get("/summaries/summary", params={"period": "thisMonth"}, headers=auth_headers).json()
    assert summary["income"] == 700

    summary = client.get("/summaries/summary", params={"period": "lastMonth"}, headers=auth_headers).json()
    assert summary["income"] == 0


def test_empty_summary(client, auth_headers):
    summary = client.get("/summaries/summary", params={"period": "thisYear"}, headers=auth_headers).json()
    assert summary["income"] == summary["expense"] == 0
    assert summary["by_category"] == {}
