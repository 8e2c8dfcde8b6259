from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
import pandas as pd
from app.config import settings
from app.models.enums import EntryType, Period
from app.services.auth import get_household_store
from app.services.dates import range_for_period

router = APIRouter()

UNCATEGORIZED = "uncategorized"


def _totals(df: pd.DataFrame, column: str) -> dict:
    grouped = df.groupby([column, "type"])["amount"].sum().unstack(fill_value=0)
    return {
        str(key): {t.value: int(row.get(t.value, 0)) for t in EntryType}
        for key, row in grouped.iterrows()
    }


@router.get("/summary")
def get_entry_summary(
    period: Period | None = Query(None, description="thisWeek, lastWeek, thisMonth, lastMonth or thisYear"),
    start: date | None = Query(None, description="Start date YYYY-MM-DD"),
    end: date | None = Query(None, description="End date YYYY-MM-DD"),
    owner_id: str | None = Query(None),
    store=Depends(get_household_store),
):
    if period:
        date_from, date_to = range_for_period(period, week_start=settings.week_start)
        start, end = date_from.date(), date_to.date()
    elif start and end and start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")

    empty = {
        "start": start, "end": end,
        "income": 0, "expense": 0, "net": 0,
        "by_category": {}, "by_owner": {}, "by_account": {}, "monthly": [],
    }

    df = store.current_frame("entries")
    if df.empty:
        return empty

    # Normalize dates and types
    df["entry_date"] = pd.to_datetime(df["entry_date"])
    df["type"] = df["type"].astype(str)
    df["amount"] = df["amount"].astype("int64")

    if start:
        df = df[df["entry_date"] >= pd.Timestamp(start)]
    if end:
        df = df[df["entry_date"] <= pd.Timestamp(end)]
    if owner_id:
        df = df[df["owner_id"] == owner_id]
    if df.empty:
        return empty

    # --- Resolve category & account names ---
    categories = {str(c["category_id"]): c["name"] for c in store.query("categories")}
    accounts = {str(a["bank_account_id"]): a["bank_name"] for a in store.query("bank_accounts")}
    df["category"] = df["category_id"].map(lambda x: categories.get(str(x), UNCATEGORIZED) if x else UNCATEGORIZED)
    df["account"] = df["bank_account_id"].map(lambda x: accounts.get(str(x), str(x)))
    df["expense_for"] = df["expense_for"].fillna(df["owner_id"]) if "expense_for" in df.columns else df["owner_id"]

    by_type = df.groupby("type")["amount"].sum()
    income = int(by_type.get(EntryType.income.value, 0))
    expense = int(by_type.get(EntryType.expense.value, 0))

    # --- Trends ---
    df["month"] = df["entry_date"].dt.to_period("M").astype(str)
    monthly = (
        df.groupby(["month", "type"])["amount"].sum()
        .unstack(fill_value=0)
        .reset_index()
        .to_dict(orient="records")
    )

    return {
        "start": start,
        "end": end,
        "income": income,
        "expense": expense,
        "net": income - expense,
        "by_category": _totals(df, "category"),
        "by_owner": _totals(df, "expense_for"),
        "by_account": _totals(df, "account"),
        "monthly": [
            {"month": m["month"], **{t.value: int(m.get(t.value, 0)) for t in EntryType}}
            for m in monthly
        ],
    }
