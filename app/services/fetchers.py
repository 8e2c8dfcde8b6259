from fastapi import HTTPException
from uuid import UUID
from app.services.storage import DocumentStore

LABELS = {
    "bank_accounts": "Bank account",
    "checks": "Check",
    "loans": "Loan",
    "debts": "Debt",
    "payments": "Payment",
    "entries": "Entry",
    "payees": "Payee",
    "categories": "Category",
    "transfers": "Transfer",
}


def not_found(record_type: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{LABELS.get(record_type, record_type)} not found")


def fetch_record(
    store: DocumentStore,
    record_type: str,
    record_id: UUID,
    *,
    history: bool = False,
    page: dict | None = None,
):
    """
    Fetch a document by id (current version or full history).

    - record_type: e.g., "bank_accounts", "debts", "entries"
    - history: if True, return list[dict] of versions, newest first; else the current row dict
    - page: {"limit": int, "offset": int} when history=True
    """
    row = store.get(record_type, record_id)
    if row is None:
        raise not_found(record_type)

    if not history:
        return row

    versions = store.history(record_type, record_id)
    if page:
        start = page["offset"]
        versions = versions[start:start + page["limit"]]
    return versions


def fetch_or_404(txn, record_type: str, record_id) -> dict:
    """Current document read through a store transaction."""
    row = txn.get(record_type, record_id)
    if row is None:
        raise not_found(record_type)
    return row


def paginate(rows: list, page: dict, sort_by: str | None = None, descending: bool = True) -> list:
    if sort_by:
        rows = sorted(rows, key=lambda r: str(r.get(sort_by) or ""), reverse=descending)
    return rows[page["offset"]: page["offset"] + page["limit"]]
