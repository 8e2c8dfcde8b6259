import io
import logging
from uuid import UUID
from datetime import date
import pandas as pd
from fastapi import APIRouter, HTTPException, Depends, UploadFile, File
from pydantic import ValidationError
from app.config import settings
from app.models.enums import EntryType, Period
from app.models.schemas.entry import EntryCreate, EntryOut
from app.services.storage import log_action
from app.services.auth import get_current_user, get_household_store
from app.services.utils import page_params
from app.services.fetchers import fetch_record, paginate
from app.services.dates import range_for_period
from app.services.errors import LedgerError
from app.services import postings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/")
def create_entry(payload: EntryCreate, user=Depends(get_current_user), store=Depends(get_household_store)):
    with store.transaction() as txn:
        entry = postings.post_entry(txn, user, payload)

    log_action(store, user["user_id"], "create", "entries", str(entry.entry_id), payload.model_dump())
    return {
        "message": "Entry created",
        "entry_id": str(entry.entry_id),
        "balance_after": entry.balance_after,
    }


def _read_upload(file: UploadFile) -> pd.DataFrame:
    raw = file.file.read()
    name = (file.filename or "").lower()

    # Load dataframe based on extension
    try:
        if name.endswith(".xlsx") or name.endswith(".xls"):
            return pd.read_excel(io.BytesIO(raw))
        try:
            return pd.read_csv(io.StringIO(raw.decode("utf-8-sig")))
        except UnicodeDecodeError:
            return pd.read_csv(io.BytesIO(raw))  # fallback
    except (ValueError, pd.errors.ParserError) as e:
        raise HTTPException(status_code=400, detail=f"Failed to read file: {e}")


def _optional(row, column):
    value = row.get(column)
    if value is None or pd.isna(value) or str(value).strip() == "":
        return None
    return str(value).strip()


def _whole_amount(value) -> int:
    amount = float(value)
    if not amount.is_integer():
        raise ValueError(f"amount {value!r} is not a whole number")
    return int(amount)


@router.post("/import")
def import_entries_upload(
    file: UploadFile = File(...),
    bank_account_id: UUID | None = None,
    user=Depends(get_current_user),
    store=Depends(get_household_store),
):
    """
    Import income and expense entries from a CSV or Excel (xlsx) file.

    Required columns (case-insensitive):
      - entry_date (YYYY-MM-DD)
      - type ("income" | "expense")
      - amount (whole currency units)
    and bank_account_id, either as a column or as a query parameter.

    Optional:
      - category (category name), payee (payee name), description, expense_for

    All rows are applied in one commit. Rows that fail validation, or that
    would overdraw their account, are skipped and counted.
    """
    df = _read_upload(file)
    if df.empty:
        return {"imported": 0, "skipped": 0, "entry_ids": []}

    # Normalize columns: lowercase + strip
    df.columns = [str(c).strip().lower() for c in df.columns]

    required = {"entry_date", "type", "amount"}
    if not required.issubset(set(df.columns)):
        missing = required - set(df.columns)
        raise HTTPException(status_code=400, detail=f"Missing required columns: {sorted(missing)}")
    if "bank_account_id" not in df.columns and bank_account_id is None:
        raise HTTPException(status_code=400, detail="Provide a bank_account_id column or query parameter")

    df["entry_date"] = pd.to_datetime(df["entry_date"], errors="coerce").dt.date

    categories = {c["name"].strip().lower(): c["category_id"] for c in store.query("categories")}
    payees = {p["name"].strip().lower(): p["payee_id"] for p in store.query("payees")}

    imported_ids: list[str] = []
    skipped = 0

    with store.transaction() as txn:
        for index, row in df.iterrows():
            try:
                category = _optional(row, "category")
                payee = _optional(row, "payee")
                if category is not None and category.lower() not in categories:
                    raise ValueError(f"unknown category {category!r}")
                if payee is not None and payee.lower() not in payees:
                    raise ValueError(f"unknown payee {payee!r}")
                if pd.isna(row["entry_date"]) or pd.isna(row["amount"]):
                    raise ValueError("missing entry_date or amount")

                payload = EntryCreate(
                    type=str(row["type"]).strip().lower(),
                    bank_account_id=_optional(row, "bank_account_id") or bank_account_id,
                    category_id=categories.get(category.lower()) if category else None,
                    payee_id=payees.get(payee.lower()) if payee else None,
                    amount=_whole_amount(row["amount"]),
                    entry_date=row["entry_date"],
                    description=_optional(row, "description") or "",
                    expense_for=_optional(row, "expense_for"),
                )
                entry = postings.post_entry(txn, user, payload)
                imported_ids.append(str(entry.entry_id))
            except (ValueError, ValidationError, LedgerError) as e:
                logger.info("import row %s skipped: %s", index, e)
                skipped += 1
                continue

    log_action(store, user["user_id"], "import", "entries", None, {"imported": len(imported_ids), "skipped": skipped})
    return {"imported": len(imported_ids), "skipped": skipped, "entry_ids": imported_ids}


@router.delete("/{entry_id}")
def delete_entry(entry_id: UUID, user=Depends(get_current_user), store=Depends(get_household_store)):
    with store.transaction() as txn:
        entry = postings.remove_entry(txn, entry_id)

    log_action(store, user["user_id"], "delete", "entries", str(entry_id),
               {"type": entry.type, "amount": entry.amount, "bank_account_id": entry.bank_account_id})
    return {"message": "Entry deleted", "entry_id": str(entry_id)}


@router.get("/", response_model=list[EntryOut])
def list_entries(
    type: EntryType | None = None,
    period: Period | None = None,
    start: date | None = None,
    end: date | None = None,
    owner_id: str | None = None,
    bank_account_id: UUID | None = None,
    store=Depends(get_household_store),
    page=Depends(page_params),
):
    filters = {}
    if type:
        filters["type"] = type.value
    if owner_id:
        filters["owner_id"] = owner_id
    if bank_account_id:
        filters["bank_account_id"] = bank_account_id
    rows = store.query("entries", **filters)

    if period:
        date_from, date_to = range_for_period(period, week_start=settings.week_start)
        start, end = date_from.date(), date_to.date()
    if start or end:
        rows = [
            r for r in rows
            if (start is None or date.fromisoformat(r["entry_date"]) >= start)
            and (end is None or date.fromisoformat(r["entry_date"]) <= end)
        ]
    return paginate(rows, page, sort_by="entry_date")


@router.get("/{entry_id}", response_model=EntryOut)
def get_entry(entry_id: UUID, store=Depends(get_household_store)):
    return fetch_record(store, "entries", entry_id)


@router.get("/{entry_id}/history", response_model=list[EntryOut])
def get_entry_history(entry_id: UUID, store=Depends(get_household_store), page=Depends(page_params)):
    return fetch_record(store, "entries", entry_id, history=True, page=page)
