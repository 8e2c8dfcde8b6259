"""Balance rules for paying, clearing and reversing obligations.

These functions only compute what has to change. Applying the result to the
store, inside one transaction, is the job of ``app.services.obligations``.
"""
from uuid import UUID
from pydantic import BaseModel
from app.models.enums import ObligationType
from app.models.schemas.account import BankAccount
from app.models.schemas.payment import Payment
from app.services.due_dates import Obligation
from app.services.errors import (
    DeletionBlockedError,
    InsufficientFundsError,
    InvalidAmountError,
    OverpaymentError,
)

EXPENSE_DESCRIPTIONS = {
    ObligationType.check: "Clearing check to {title}",
    ObligationType.loan: "Loan installment: {title}",
    ObligationType.debt: "Debt payment: {title}",
}


class ExpenseDraft(BaseModel):
    amount: int
    description: str
    bank_account_id: UUID
    owner_id: str


class PaymentEffect(BaseModel):
    remaining_amount: int
    paid_installments: int
    bank_delta: int
    expense: ExpenseDraft


class ReversalEffect(BaseModel):
    payment_id: UUID
    bank_account_id: UUID
    bank_delta: int
    remaining_delta: int
    removed_expense_id: UUID


class DeletionPlan(BaseModel):
    obligation_id: UUID
    reversals: list[ReversalEffect] = []

    @property
    def bank_deltas(self) -> dict[UUID, int]:
        deltas: dict[UUID, int] = {}
        for r in self.reversals:
            deltas[r.bank_account_id] = deltas.get(r.bank_account_id, 0) + r.bank_delta
        return deltas


def expense_description(obligation: Obligation) -> str:
    return EXPENSE_DESCRIPTIONS[obligation.obligation_type].format(title=obligation.title)


def apply_payment(obligation: Obligation, amount: int, bank_account: BankAccount) -> PaymentEffect:
    """Validate a payment and compute its effects.

    Raises before anything is computed when the amount is not positive, is
    larger than what is still owed, or is not covered by the account's
    available balance.
    """
    if amount <= 0:
        raise InvalidAmountError("Payment amount must be greater than zero")
    if amount > obligation.remaining_amount:
        raise OverpaymentError(amount, obligation.remaining_amount)
    if bank_account.available_balance < amount:
        raise InsufficientFundsError(amount, bank_account.available_balance)

    return PaymentEffect(
        remaining_amount=obligation.remaining_amount - amount,
        paid_installments=(obligation.paid_installments or 0) + 1,
        bank_delta=-amount,
        expense=ExpenseDraft(
            amount=amount,
            description=expense_description(obligation),
            bank_account_id=bank_account.bank_account_id,
            owner_id=obligation.owner_id,
        ),
    )


def reverse_payment(payment: Payment) -> ReversalEffect:
    return ReversalEffect(
        payment_id=payment.payment_id,
        bank_account_id=payment.bank_account_id,
        bank_delta=payment.amount,
        remaining_delta=payment.amount,
        removed_expense_id=payment.expense_id,
    )


def delete_obligation(obligation: Obligation, payments: list[Payment], cascade: bool = False) -> DeletionPlan:
    """Plan the deletion of an obligation.

    An obligation with payment history is only deleted when the caller asks
    for the cascade, in which case every payment is reversed first.
    """
    if payments and not cascade:
        raise DeletionBlockedError(
            f"{obligation.obligation_type.value.capitalize()} has {len(payments)} recorded payment(s); "
            "reverse them or confirm a cascading delete"
        )
    return DeletionPlan(
        obligation_id=obligation.obligation_id,
        reversals=[reverse_payment(p) for p in payments],
    )
