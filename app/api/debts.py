from fastapi import APIRouter, Depends
from uuid import UUID
from app.models.enums import ObligationType
from app.models.schemas.debt import Debt, DebtCreate, DebtOut, DebtPaymentRequest
from app.models.schemas.payment import PaymentOut
from app.services.storage import log_action
from app.services.auth import get_current_user, get_household_store
from app.services.utils import page_params
from app.services.fetchers import fetch_record, fetch_or_404, paginate
from app.services import obligations

router = APIRouter()


def _with_due_date(store, row: dict) -> dict:
    return {**row, "next_due_date": obligations.resolve_next_due_date(store, ObligationType.debt, row)}


@router.post("/")
def create_debt(payload: DebtCreate, user=Depends(get_current_user), store=Depends(get_household_store)):
    with store.transaction() as txn:
        fetch_or_404(txn, "payees", payload.payee_id)
        debt = Debt(
            household_id=store.household_id,
            registered_by_user_id=user["user_id"],
            remaining_amount=payload.amount,
            **payload.model_dump(),
        )
        txn.put("debts", debt)

    log_action(store, user["user_id"], "create", "debts", str(debt.debt_id), payload.model_dump())
    return {"message": "Debt created", "debt_id": str(debt.debt_id)}


@router.post("/{debt_id}/pay")
def pay_debt(debt_id: UUID, payload: DebtPaymentRequest, user=Depends(get_current_user),
             store=Depends(get_household_store)):
    debt, payment = obligations.pay_debt(store, user, debt_id, payload.bank_account_id, payload.amount)
    log_action(store, user["user_id"], "pay", "debts", str(debt_id), {
        "amount": payment.amount,
        "bank_account_id": payment.bank_account_id,
        "payment_id": payment.payment_id,
    })
    return {
        "message": "Debt payment recorded",
        "debt_id": str(debt_id),
        "payment_id": str(payment.payment_id),
        "expense_id": str(payment.expense_id),
        "remaining_amount": debt["remaining_amount"],
    }


@router.delete("/{debt_id}/payments/{payment_id}")
def reverse_debt_payment(debt_id: UUID, payment_id: UUID, user=Depends(get_current_user),
                         store=Depends(get_household_store)):
    debt = obligations.reverse_obligation_payment(store, ObligationType.debt, debt_id, payment_id)
    log_action(store, user["user_id"], "reverse_payment", "debts", str(debt_id), {"payment_id": payment_id})
    return {
        "message": "Debt payment reversed",
        "debt_id": str(debt_id),
        "payment_id": str(payment_id),
        "remaining_amount": debt["remaining_amount"],
    }


@router.delete("/{debt_id}")
def delete_debt(debt_id: UUID, cascade: bool = False, user=Depends(get_current_user),
                store=Depends(get_household_store)):
    plan = obligations.delete_obligation_record(store, ObligationType.debt, debt_id, cascade)
    log_action(store, user["user_id"], "delete", "debts", str(debt_id),
               {"cascade": cascade, "reversed_payments": len(plan.reversals)})
    return {
        "message": "Debt deleted",
        "debt_id": str(debt_id),
        "reversed_payments": [str(r.payment_id) for r in plan.reversals],
    }


@router.get("/", response_model=list[DebtOut])
def list_debts(owner_id: str | None = None, store=Depends(get_household_store), page=Depends(page_params)):
    filters = {"owner_id": owner_id} if owner_id else {}
    rows = paginate(store.query("debts", **filters), page, sort_by="created_at", descending=False)
    return [_with_due_date(store, row) for row in rows]


@router.get("/{debt_id}", response_model=DebtOut)
def get_debt(debt_id: UUID, store=Depends(get_household_store)):
    return _with_due_date(store, fetch_record(store, "debts", debt_id))


@router.get("/{debt_id}/payments", response_model=list[PaymentOut])
def list_debt_payments(debt_id: UUID, store=Depends(get_household_store)):
    fetch_record(store, "debts", debt_id)
    return obligations.payments_for(store, ObligationType.debt, debt_id)
