from fastapi import APIRouter, HTTPException, Depends
from uuid import UUID
from datetime import datetime, timezone
from app.models.enums import CheckStatus
from app.models.schemas.account import BankAccount, BankAccountCreate, BankAccountOut, BankAccountUpdate
from app.services.storage import log_action
from app.services.auth import get_current_user, get_household_store
from app.services.utils import page_params
from app.services.fetchers import fetch_record, fetch_or_404, paginate
from app.services.errors import DeletionBlockedError

router = APIRouter()


@router.post("/")
def create_account(payload: BankAccountCreate, user=Depends(get_current_user), store=Depends(get_household_store)):
    account = BankAccount(
        household_id=store.household_id,
        balance=payload.initial_balance,
        **payload.model_dump(),
    )
    store.put("bank_accounts", account)
    log_action(store, user["user_id"], "create", "bank_accounts", str(account.bank_account_id), payload.model_dump())

    return {"message": "Bank account created", "bank_account_id": str(account.bank_account_id)}


@router.put("/{bank_account_id}")
def update_account(bank_account_id: UUID, payload: BankAccountUpdate,
                   user=Depends(get_current_user), store=Depends(get_household_store)):
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")

    with store.transaction() as txn:
        row = fetch_or_404(txn, "bank_accounts", bank_account_id)
        updated = BankAccount(**{**row, **changes, "updated_at": datetime.now(timezone.utc)})
        if updated.blocked_balance > updated.balance:
            raise HTTPException(status_code=400, detail="Blocked balance cannot exceed the balance")
        txn.put("bank_accounts", updated)

    log_action(store, user["user_id"], "update", "bank_accounts", str(bank_account_id), changes)
    return {"message": "Bank account updated", "bank_account_id": str(bank_account_id)}


@router.delete("/{bank_account_id}")
def delete_account(bank_account_id: UUID, user=Depends(get_current_user), store=Depends(get_household_store)):
    with store.transaction() as txn:
        row = fetch_or_404(txn, "bank_accounts", bank_account_id)
        if txn.query("checks", bank_account_id=bank_account_id, status=CheckStatus.pending.value):
            raise DeletionBlockedError("Bank account has pending checks")
        if txn.query("payments", bank_account_id=bank_account_id):
            raise DeletionBlockedError("Bank account has recorded payments")
        txn.delete("bank_accounts", row)

    log_action(store, user["user_id"], "delete", "bank_accounts", str(bank_account_id))
    return {"message": "Bank account deleted", "bank_account_id": str(bank_account_id)}


@router.get("/", response_model=list[BankAccountOut])
def list_accounts(owner_id: str | None = None, store=Depends(get_household_store), page=Depends(page_params)):
    filters = {"owner_id": owner_id} if owner_id else {}
    rows = store.query("bank_accounts", **filters)
    return paginate(rows, page, sort_by="created_at", descending=False)


@router.get("/{bank_account_id}", response_model=BankAccountOut)
def get_account(bank_account_id: UUID, store=Depends(get_household_store)):
    return fetch_record(store, "bank_accounts", bank_account_id)


@router.get("/{bank_account_id}/history", response_model=list[BankAccountOut])
def get_account_history(bank_account_id: UUID, store=Depends(get_household_store), page=Depends(page_params)):
    return fetch_record(store, "bank_accounts", bank_account_id, history=True, page=page)
