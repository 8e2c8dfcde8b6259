"""Payment workflows for checks, loans and debts.

Each workflow runs inside one store transaction: the obligation, the bank
account balance, the payment and its expense entry are committed together or
not at all.
"""
import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from uuid import UUID, uuid4
from app.models.enums import CheckStatus, EntryType, ObligationType, ScheduleKind
from app.models.schemas.account import BankAccount
from app.models.schemas.deadline import Deadline
from app.models.schemas.entry import Entry
from app.models.schemas.loan import Loan, LoanCreate
from app.models.schemas.payment import Payment
from app.services.due_dates import Obligation, next_due_date
from app.services.errors import ObligationStateError
from app.services.fetchers import fetch_or_404, not_found
from app.services.ledger import apply_payment, delete_obligation, reverse_payment
from app.services.storage import DocumentStore

logger = logging.getLogger(__name__)

COLLECTIONS = {
    ObligationType.check: "checks",
    ObligationType.loan: "loans",
    ObligationType.debt: "debts",
}
ID_FIELDS = {
    ObligationType.check: "check_id",
    ObligationType.loan: "loan_id",
    ObligationType.debt: "debt_id",
}
DEADLINE_TITLES = {
    ObligationType.check: "Check to {title}",
    ObligationType.loan: "Loan installment: {title}",
    ObligationType.debt: "Debt payment: {title}",
}


# --- normalisation ---------------------------------------------------------

def check_obligation(check: dict, payee_name: str | None = None) -> Obligation:
    pending = check["status"] == CheckStatus.pending.value
    return Obligation(
        obligation_type=ObligationType.check,
        obligation_id=check["check_id"],
        title=payee_name or "unknown payee",
        owner_id=check["owner_id"],
        amount=check["amount"],
        remaining_amount=check["amount"] if pending else 0,
        schedule_kind=ScheduleKind.fixed_date,
        due_date=check["due_date"],
    )


def loan_obligation(loan: dict) -> Obligation:
    return Obligation(
        obligation_type=ObligationType.loan,
        obligation_id=loan["loan_id"],
        title=loan["title"],
        owner_id=loan["owner_id"],
        amount=loan["amount"],
        remaining_amount=loan["remaining_amount"],
        schedule_kind=ScheduleKind.installment_by_count,
        start_date=loan.get("start_date"),
        first_installment_date=loan.get("first_installment_date"),
        payment_day=loan.get("payment_day"),
        number_of_installments=loan.get("number_of_installments") or 0,
        paid_installments=loan.get("paid_installments"),
        installment_amount=loan.get("installment_amount"),
    )


def debt_schedule(debt: dict) -> ScheduleKind:
    if not debt.get("is_installment"):
        return ScheduleKind.fixed_date
    if debt.get("first_installment_date") or debt.get("number_of_installments"):
        return ScheduleKind.installment_by_count
    return ScheduleKind.installment_by_day_of_month


def debt_obligation(debt: dict) -> Obligation:
    return Obligation(
        obligation_type=ObligationType.debt,
        obligation_id=debt["debt_id"],
        title=debt["description"],
        owner_id=debt["owner_id"],
        amount=debt["amount"],
        remaining_amount=debt["remaining_amount"],
        schedule_kind=debt_schedule(debt),
        start_date=debt.get("start_date"),
        due_date=debt.get("due_date"),
        first_installment_date=debt.get("first_installment_date"),
        payment_day=debt.get("payment_day"),
        number_of_installments=debt.get("number_of_installments") or 0,
        paid_installments=debt.get("paid_installments"),
        installment_amount=debt.get("installment_amount"),
    )


def to_obligation(reader, obligation_type: ObligationType, record: dict) -> Obligation:
    """``reader`` is a store or a transaction; checks need it for the payee name."""
    if obligation_type == ObligationType.check:
        payee = reader.get("payees", record["payee_id"])
        return check_obligation(record, payee["name"] if payee else None)
    if obligation_type == ObligationType.loan:
        return loan_obligation(record)
    return debt_obligation(record)


def payments_for(reader, obligation_type: ObligationType, obligation_id) -> list[Payment]:
    rows = reader.query("payments", obligation_type=obligation_type.value, obligation_id=obligation_id)
    return sorted((Payment(**r) for r in rows), key=lambda p: p.payment_date)


# --- workflows -------------------------------------------------------------

def _record_payment(txn, user: dict, obligation_type: ObligationType, record: dict,
                    amount: int, bank_account_id, paid_at: datetime):
    account = BankAccount(**fetch_or_404(txn, "bank_accounts", bank_account_id))
    obligation = to_obligation(txn, obligation_type, record)
    effect = apply_payment(obligation, amount, account)

    payment_id = uuid4()
    balance_after = account.balance + effect.bank_delta
    expense = Entry(
        household_id=account.household_id,
        registered_by_user_id=user["user_id"],
        owner_id=effect.expense.owner_id,
        bank_account_id=account.bank_account_id,
        category_id=record.get("category_id"),
        payee_id=record.get("payee_id"),
        type=EntryType.expense,
        amount=effect.expense.amount,
        entry_date=paid_at.date(),
        description=effect.expense.description,
        expense_for=obligation.owner_id,
        payment_id=payment_id,
        obligation_type=obligation_type,
        obligation_id=obligation.obligation_id,
        balance_before=account.balance,
        balance_after=balance_after,
    )
    payment = Payment(
        payment_id=payment_id,
        household_id=account.household_id,
        registered_by_user_id=user["user_id"],
        obligation_type=obligation_type,
        obligation_id=obligation.obligation_id,
        bank_account_id=account.bank_account_id,
        amount=amount,
        payment_date=paid_at,
        expense_id=expense.entry_id,
    )

    txn.put("bank_accounts", account.model_copy(update={"balance": balance_after, "updated_at": paid_at}))
    txn.put("entries", expense)
    txn.put("payments", payment)
    return effect, payment


def clear_check(store: DocumentStore, user: dict, check_id: UUID,
                cleared_date: date | None = None) -> tuple[dict, Payment]:
    """Pay a pending check in full from the account it is drawn on."""
    now = datetime.now(timezone.utc)
    paid_at = datetime.combine(cleared_date, now.timetz()) if cleared_date else now
    with store.transaction() as txn:
        check = fetch_or_404(txn, "checks", check_id)
        if check["status"] == CheckStatus.cleared.value:
            raise ObligationStateError("Check is already cleared")

        _, payment = _record_payment(
            txn, user, ObligationType.check, check, check["amount"], check["bank_account_id"], paid_at
        )
        check = txn.put("checks", {
            **check,
            "status": CheckStatus.cleared.value,
            "cleared_date": paid_at.date(),
            "updated_at": now,
        })
    logger.info("check %s cleared for %s", check_id, payment.amount)
    return check, payment


def pay_installment(store: DocumentStore, user: dict, obligation_type: ObligationType,
                    obligation_id: UUID, bank_account_id: UUID, amount: int | None = None) -> tuple[dict, Payment]:
    """Record a loan or debt payment.

    Without an explicit ``amount`` the installment amount is paid, capped at
    what is still owed.
    """
    collection = COLLECTIONS[obligation_type]
    now = datetime.now(timezone.utc)
    with store.transaction() as txn:
        record = fetch_or_404(txn, collection, obligation_id)
        if amount is None:
            amount = min(record.get("installment_amount") or record["remaining_amount"], record["remaining_amount"])

        effect, payment = _record_payment(txn, user, obligation_type, record, amount, bank_account_id, now)
        record = txn.put(collection, {
            **record,
            "remaining_amount": effect.remaining_amount,
            "paid_installments": effect.paid_installments,
            "updated_at": now,
        })
    logger.info("%s %s paid %s, %s remaining", obligation_type.value, obligation_id, amount, effect.remaining_amount)
    return record, payment


def pay_loan(store: DocumentStore, user: dict, loan_id: UUID, bank_account_id: UUID, amount: int | None = None):
    return pay_installment(store, user, ObligationType.loan, loan_id, bank_account_id, amount)


def pay_debt(store: DocumentStore, user: dict, debt_id: UUID, bank_account_id: UUID, amount: int):
    return pay_installment(store, user, ObligationType.debt, debt_id, bank_account_id, amount)


def _undo_payment(txn, payment: Payment, now: datetime) -> None:
    effect = reverse_payment(payment)
    account = fetch_or_404(txn, "bank_accounts", effect.bank_account_id)
    txn.put("bank_accounts", {**account, "balance": account["balance"] + effect.bank_delta, "updated_at": now})

    expense = txn.get("entries", effect.removed_expense_id)
    if expense is not None:
        txn.delete("entries", expense)
    txn.delete("payments", payment)


def _restore_obligation(obligation_type: ObligationType, record: dict, payment: Payment, now: datetime) -> dict:
    if obligation_type == ObligationType.check:
        return {**record, "status": CheckStatus.pending.value, "cleared_date": None, "updated_at": now}
    return {
        **record,
        "remaining_amount": record["remaining_amount"] + payment.amount,
        "paid_installments": max((record.get("paid_installments") or 0) - 1, 0),
        "updated_at": now,
    }


def reverse_obligation_payment(store: DocumentStore, obligation_type: ObligationType,
                               obligation_id: UUID, payment_id: UUID) -> dict:
    """Undo one payment: refund the account, drop its expense, restore what is owed."""
    collection = COLLECTIONS[obligation_type]
    now = datetime.now(timezone.utc)
    with store.transaction() as txn:
        record = fetch_or_404(txn, collection, obligation_id)
        payment = Payment(**fetch_or_404(txn, "payments", payment_id))
        if payment.obligation_type != obligation_type or str(payment.obligation_id) != str(obligation_id):
            raise not_found("payments")

        _undo_payment(txn, payment, now)
        record = txn.put(collection, _restore_obligation(obligation_type, record, payment, now))
    logger.info("payment %s on %s %s reversed", payment_id, obligation_type.value, obligation_id)
    return record


def unclear_check(store: DocumentStore, check_id: UUID) -> dict:
    check = store.get("checks", check_id)
    if check is None:
        raise not_found("checks")
    payments = payments_for(store, ObligationType.check, check_id)
    if check["status"] != CheckStatus.cleared.value or not payments:
        raise ObligationStateError("Check is not cleared")
    return reverse_obligation_payment(store, ObligationType.check, check_id, payments[-1].payment_id)


def delete_obligation_record(store: DocumentStore, obligation_type: ObligationType,
                             obligation_id: UUID, cascade: bool = False):
    """Soft-delete an obligation, reversing its payments first when ``cascade`` is set."""
    collection = COLLECTIONS[obligation_type]
    now = datetime.now(timezone.utc)
    with store.transaction() as txn:
        record = fetch_or_404(txn, collection, obligation_id)
        payments = payments_for(txn, obligation_type, obligation_id)
        plan = delete_obligation(to_obligation(txn, obligation_type, record), payments, cascade)

        for payment in payments:
            _undo_payment(txn, payment, now)
            record = _restore_obligation(obligation_type, record, payment, now)
        txn.delete(collection, record)
    if plan.reversals:
        logger.info("%s %s deleted with %d payment(s) reversed",
                    obligation_type.value, obligation_id, len(plan.reversals))
    return plan


def create_loan(store: DocumentStore, user: dict, payload: LoanCreate) -> Loan:
    """Register a loan; with ``deposit_to_account_id`` the principal is credited to that account."""
    installment_amount = payload.installment_amount
    if not installment_amount and payload.number_of_installments:
        installment_amount = -(-payload.amount // payload.number_of_installments)

    with store.transaction() as txn:
        loan = Loan(
            household_id=store.household_id,
            registered_by_user_id=user["user_id"],
            remaining_amount=payload.amount,
            **payload.model_dump(exclude={"installment_amount"}),
            installment_amount=installment_amount,
        )
        if payload.deposit_to_account_id is not None:
            account = fetch_or_404(txn, "bank_accounts", payload.deposit_to_account_id)
            txn.put("bank_accounts", {
                **account,
                "balance": account["balance"] + payload.amount,
                "updated_at": loan.created_at,
            })
        txn.put("loans", loan)
    return loan


# --- due dates -------------------------------------------------------------

def resolve_next_due_date(store: DocumentStore, obligation_type: ObligationType, record: dict,
                          today: date | None = None) -> date | None:
    obligation = to_obligation(store, obligation_type, record)
    history = None
    if obligation.schedule_kind == ScheduleKind.installment_by_day_of_month:
        history = payments_for(store, obligation_type, obligation.obligation_id)
    return next_due_date(obligation, history=history, today=today)


def _deadline_amount(obligation: Obligation) -> int:
    if obligation.obligation_type == ObligationType.check:
        return obligation.amount
    return min(obligation.installment_amount or obligation.remaining_amount, obligation.remaining_amount)


def upcoming_deadlines(store: DocumentStore, today: date | None = None, limit: int | None = None) -> list[Deadline]:
    """Next due date of every open check, loan and debt, soonest first."""
    payees = {str(p["payee_id"]): p["name"] for p in store.query("payees")}
    payments = defaultdict(list)
    for row in store.query("payments"):
        payments[str(row["obligation_id"])].append(Payment(**row))

    obligations = [
        check_obligation(c, payees.get(str(c["payee_id"])))
        for c in store.query("checks", status=CheckStatus.pending.value)
    ]
    obligations += [loan_obligation(row) for row in store.query("loans")]
    obligations += [debt_obligation(row) for row in store.query("debts")]

    deadlines = []
    for obligation in obligations:
        if obligation.is_settled:
            continue
        history = None
        if obligation.schedule_kind == ScheduleKind.installment_by_day_of_month:
            history = payments[str(obligation.obligation_id)]
        due = next_due_date(obligation, history=history, today=today)
        if due is None:
            continue
        deadlines.append(Deadline(
            obligation_type=obligation.obligation_type,
            obligation_id=obligation.obligation_id,
            title=DEADLINE_TITLES[obligation.obligation_type].format(title=obligation.title),
            due_date=due,
            amount=_deadline_amount(obligation),
            owner_id=obligation.owner_id,
        ))

    deadlines.sort(key=lambda d: (d.due_date, d.title))
    return deadlines[:limit] if limit else deadlines
