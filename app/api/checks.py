from fastapi import APIRouter, HTTPException, Depends
from uuid import UUID
from datetime import date, datetime, timezone
from pydantic import BaseModel
from app.models.enums import AccountType, CheckStatus, ObligationType
from app.models.schemas.check import Check, CheckCreate, CheckOut, CheckUpdate
from app.models.schemas.payment import PaymentOut
from app.services.storage import log_action
from app.services.auth import get_current_user, get_household_store
from app.services.utils import page_params
from app.services.fetchers import fetch_record, fetch_or_404, paginate
from app.services.errors import ObligationStateError
from app.services import obligations

router = APIRouter()


class ClearCheckRequest(BaseModel):
    cleared_date: date | None = None


def _validate_references(txn, bank_account_id=None, payee_id=None, category_id=None):
    if bank_account_id is not None:
        account = fetch_or_404(txn, "bank_accounts", bank_account_id)
        if account["account_type"] != AccountType.checking.value:
            raise HTTPException(status_code=400, detail="Checks can only be drawn on checking accounts")
    if payee_id is not None:
        fetch_or_404(txn, "payees", payee_id)
    if category_id is not None:
        fetch_or_404(txn, "categories", category_id)


@router.post("/")
def create_check(payload: CheckCreate, user=Depends(get_current_user), store=Depends(get_household_store)):
    if payload.due_date < payload.issue_date:
        raise HTTPException(status_code=400, detail="Due date cannot be before the issue date")

    with store.transaction() as txn:
        _validate_references(txn, payload.bank_account_id, payload.payee_id, payload.category_id)
        check = Check(
            household_id=store.household_id,
            registered_by_user_id=user["user_id"],
            **payload.model_dump(),
        )
        txn.put("checks", check)

    log_action(store, user["user_id"], "create", "checks", str(check.check_id), payload.model_dump())
    return {"message": "Check created", "check_id": str(check.check_id)}


@router.put("/{check_id}")
def update_check(check_id: UUID, payload: CheckUpdate, user=Depends(get_current_user),
                 store=Depends(get_household_store)):
    changes = payload.model_dump(exclude_none=True)
    with store.transaction() as txn:
        row = fetch_or_404(txn, "checks", check_id)
        if row["status"] != CheckStatus.pending.value:
            raise ObligationStateError("Cleared checks cannot be edited; un-clear the check first")
        _validate_references(txn, payee_id=changes.get("payee_id"), category_id=changes.get("category_id"))

        updated = Check(**{**row, **changes, "updated_at": datetime.now(timezone.utc)})
        if updated.due_date < updated.issue_date:
            raise HTTPException(status_code=400, detail="Due date cannot be before the issue date")
        txn.put("checks", updated)

    log_action(store, user["user_id"], "update", "checks", str(check_id), changes)
    return {"message": "Check updated", "check_id": str(check_id)}


@router.post("/{check_id}/clear")
def clear_check(check_id: UUID, payload: ClearCheckRequest | None = None,
                user=Depends(get_current_user), store=Depends(get_household_store)):
    cleared_date = payload.cleared_date if payload else None
    check, payment = obligations.clear_check(store, user, check_id, cleared_date)

    log_action(store, user["user_id"], "clear", "checks", str(check_id), {
        "amount": payment.amount,
        "bank_account_id": payment.bank_account_id,
        "payment_id": payment.payment_id,
    })
    return {
        "message": "Check cleared",
        "check_id": str(check_id),
        "payment_id": str(payment.payment_id),
        "expense_id": str(payment.expense_id),
    }


@router.post("/{check_id}/unclear")
def unclear_check(check_id: UUID, user=Depends(get_current_user), store=Depends(get_household_store)):
    obligations.unclear_check(store, check_id)
    log_action(store, user["user_id"], "unclear", "checks", str(check_id))
    return {"message": "Check returned to pending", "check_id": str(check_id)}


@router.delete("/{check_id}")
def delete_check(check_id: UUID, cascade: bool = False, user=Depends(get_current_user),
                 store=Depends(get_household_store)):
    plan = obligations.delete_obligation_record(store, ObligationType.check, check_id, cascade)
    log_action(store, user["user_id"], "delete", "checks", str(check_id),
               {"cascade": cascade, "reversed_payments": len(plan.reversals)})
    return {
        "message": "Check deleted",
        "check_id": str(check_id),
        "reversed_payments": [str(r.payment_id) for r in plan.reversals],
    }


@router.get("/", response_model=list[CheckOut])
def list_checks(status: CheckStatus | None = None, owner_id: str | None = None,
                store=Depends(get_household_store), page=Depends(page_params)):
    filters = {}
    if status:
        filters["status"] = status.value
    if owner_id:
        filters["owner_id"] = owner_id
    rows = store.query("checks", **filters)
    return paginate(rows, page, sort_by="due_date", descending=False)


@router.get("/{check_id}", response_model=CheckOut)
def get_check(check_id: UUID, store=Depends(get_household_store)):
    return fetch_record(store, "checks", check_id)


@router.get("/{check_id}/payments", response_model=list[PaymentOut])
def list_check_payments(check_id: UUID, store=Depends(get_household_store)):
    fetch_record(store, "checks", check_id)
    return obligations.payments_for(store, ObligationType.check, check_id)
