from fastapi import APIRouter, Depends
from uuid import UUID
from app.models.enums import ObligationType
from app.models.schemas.loan import LoanCreate, LoanOut, LoanPaymentRequest
from app.models.schemas.payment import PaymentOut
from app.services.storage import log_action
from app.services.auth import get_current_user, get_household_store
from app.services.utils import page_params
from app.services.fetchers import fetch_record, paginate
from app.services import obligations

router = APIRouter()


def _with_due_date(store, row: dict) -> dict:
    return {**row, "next_due_date": obligations.resolve_next_due_date(store, ObligationType.loan, row)}


@router.post("/")
def create_loan(payload: LoanCreate, user=Depends(get_current_user), store=Depends(get_household_store)):
    loan = obligations.create_loan(store, user, payload)
    log_action(store, user["user_id"], "create", "loans", str(loan.loan_id), payload.model_dump())
    return {"message": "Loan created", "loan_id": str(loan.loan_id)}


@router.post("/{loan_id}/pay")
def pay_loan(loan_id: UUID, payload: LoanPaymentRequest, user=Depends(get_current_user),
             store=Depends(get_household_store)):
    loan, payment = obligations.pay_loan(store, user, loan_id, payload.bank_account_id, payload.amount)
    log_action(store, user["user_id"], "pay", "loans", str(loan_id), {
        "amount": payment.amount,
        "bank_account_id": payment.bank_account_id,
        "payment_id": payment.payment_id,
    })
    return {
        "message": "Loan installment paid",
        "loan_id": str(loan_id),
        "payment_id": str(payment.payment_id),
        "expense_id": str(payment.expense_id),
        "remaining_amount": loan["remaining_amount"],
    }


@router.delete("/{loan_id}/payments/{payment_id}")
def reverse_loan_payment(loan_id: UUID, payment_id: UUID, user=Depends(get_current_user),
                         store=Depends(get_household_store)):
    loan = obligations.reverse_obligation_payment(store, ObligationType.loan, loan_id, payment_id)
    log_action(store, user["user_id"], "reverse_payment", "loans", str(loan_id), {"payment_id": payment_id})
    return {
        "message": "Loan payment reversed",
        "loan_id": str(loan_id),
        "payment_id": str(payment_id),
        "remaining_amount": loan["remaining_amount"],
    }


@router.delete("/{loan_id}")
def delete_loan(loan_id: UUID, cascade: bool = False, user=Depends(get_current_user),
                store=Depends(get_household_store)):
    plan = obligations.delete_obligation_record(store, ObligationType.loan, loan_id, cascade)
    log_action(store, user["user_id"], "delete", "loans", str(loan_id),
               {"cascade": cascade, "reversed_payments": len(plan.reversals)})
    return {
        "message": "Loan deleted",
        "loan_id": str(loan_id),
        "reversed_payments": [str(r.payment_id) for r in plan.reversals],
    }


@router.get("/", response_model=list[LoanOut])
def list_loans(owner_id: str | None = None, store=Depends(get_household_store), page=Depends(page_params)):
    filters = {"owner_id": owner_id} if owner_id else {}
    rows = paginate(store.query("loans", **filters), page, sort_by="created_at", descending=False)
    return [_with_due_date(store, row) for row in rows]


@router.get("/{loan_id}", response_model=LoanOut)
def get_loan(loan_id: UUID, store=Depends(get_household_store)):
    return _with_due_date(store, fetch_record(store, "loans", loan_id))


@router.get("/{loan_id}/payments", response_model=list[PaymentOut])
def list_loan_payments(loan_id: UUID, store=Depends(get_household_store)):
    fetch_record(store, "loans", loan_id)
    return obligations.payments_for(store, ObligationType.loan, loan_id)
