from fastapi import APIRouter, HTTPException, Depends
from uuid import UUID
from app.models.schemas.transfer import TransferCreate, TransferOut
from app.services.storage import log_action
from app.services.auth import get_current_user, get_household_store
from app.services.utils import page_params
from app.services.fetchers import fetch_record, paginate
from app.services import postings

router = APIRouter()


@router.post("/")
def create_transfer(payload: TransferCreate, user=Depends(get_current_user), store=Depends(get_household_store)):
    if payload.from_bank_account_id == payload.to_bank_account_id:
        raise HTTPException(status_code=400, detail="Cannot transfer to the same account")

    with store.transaction() as txn:
        record = postings.transfer(txn, user, payload)

    log_action(store, user["user_id"], "create", "transfers", str(record.transfer_id), payload.model_dump())
    return {
        "message": "Transfer completed",
        "transfer_id": str(record.transfer_id),
        "from_balance_after": record.from_balance_after,
        "to_balance_after": record.to_balance_after,
    }


@router.get("/", response_model=list[TransferOut])
def list_transfers(bank_account_id: UUID | None = None, store=Depends(get_household_store),
                   page=Depends(page_params)):
    rows = store.query("transfers")
    if bank_account_id:
        rows = [
            r for r in rows
            if str(bank_account_id) in (r["from_bank_account_id"], r["to_bank_account_id"])
        ]
    return paginate(rows, page, sort_by="transfer_date")


@router.get("/{transfer_id}", response_model=TransferOut)
def get_transfer(transfer_id: UUID, store=Depends(get_household_store)):
    return fetch_record(store, "transfers", transfer_id)
