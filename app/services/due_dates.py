"""Next-due-date resolution for checks, loans and debts.

Every obligation kind is normalised into :class:`Obligation` first, so the
resolver never looks at kind-specific field names.
"""
import logging
import warnings
from datetime import date, datetime
from typing import Iterable
from uuid import UUID
import pandas as pd
from pydantic import BaseModel
from app.models.enums import ObligationType, ScheduleKind
from app.services.dates import add_months, safe_due_date

logger = logging.getLogger(__name__)


class MalformedScheduleWarning(UserWarning):
    """An installment obligation is missing the fields its schedule needs."""


class Obligation(BaseModel):
    obligation_type: ObligationType
    obligation_id: UUID
    title: str
    owner_id: str
    amount: int
    remaining_amount: int
    schedule_kind: ScheduleKind
    start_date: date | None = None
    due_date: date | None = None
    first_installment_date: date | None = None
    payment_day: int | None = None
    number_of_installments: int = 0
    paid_installments: int | None = 0
    installment_amount: int | None = None

    @property
    def is_settled(self) -> bool:
        return self.remaining_amount <= 0


def first_occurrence(start_date: date, payment_day: int) -> date:
    """First ``payment_day`` of a month falling on or after ``start_date``."""
    candidate = safe_due_date(start_date, 0, payment_day)
    if candidate < start_date:
        candidate = safe_due_date(start_date, 1, payment_day)
    return candidate


def installment_anchor(obligation: Obligation) -> date | None:
    if obligation.first_installment_date is not None:
        return obligation.first_installment_date
    if obligation.start_date is not None and obligation.payment_day:
        return first_occurrence(obligation.start_date, obligation.payment_day)
    return None


def next_due_date(obligation: Obligation, history: Iterable | None = None,
                  today: date | None = None) -> date | None:
    """Due date of the first unpaid installment, or ``None`` once settled.

    ``history`` is the list of payments recorded against the obligation. When
    given, its length is the paid-installment count; otherwise the stored
    ``paid_installments`` counter is used. ``number_of_installments`` does not
    limit the result: an obligation with money left keeps producing dates.
    """
    if obligation.is_settled:
        return None

    if obligation.schedule_kind == ScheduleKind.fixed_date:
        if obligation.due_date is None:
            return _malformed(obligation, "due_date")
        return obligation.due_date

    payments = list(history) if history is not None else None

    if obligation.schedule_kind == ScheduleKind.installment_by_count:
        anchor = installment_anchor(obligation)
        if anchor is None:
            return _malformed(obligation, "first_installment_date or payment_day")
        paid_count = len(payments) if payments is not None else (obligation.paid_installments or 0)
        return add_months(anchor, paid_count)

    if obligation.start_date is None or not obligation.payment_day:
        return _malformed(obligation, "start_date and payment_day")
    last_payment = max((_payment_day(p) for p in payments), default=None) if payments else None
    return next_due_date_by_day(obligation.start_date, obligation.payment_day, last_payment, today)


def next_due_date_by_day(start_date: date, payment_day: int,
                         last_payment_date: date | None = None,
                         today: date | None = None) -> date:
    """Due date of a schedule keyed on a day of the month.

    Before the schedule starts, the first ``payment_day`` on or after
    ``start_date``. Afterwards, this month's occurrence if it has not passed,
    else next month's. A last payment made in the candidate's month means that
    installment was paid early, and the following month is due instead.
    """
    today = today or date.today()
    first = first_occurrence(start_date, payment_day)
    if first >= today:
        return first

    candidate = safe_due_date(today, 0, payment_day)
    if candidate < today:
        candidate = safe_due_date(today, 1, payment_day)

    if last_payment_date is not None:
        if (last_payment_date.year, last_payment_date.month) == (candidate.year, candidate.month):
            candidate = safe_due_date(candidate, 1, payment_day)
    return candidate


def _payment_day(payment) -> date:
    value = payment.payment_date if hasattr(payment, "payment_date") else payment["payment_date"]
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return pd.Timestamp(value).date()
    return value


def _malformed(obligation: Obligation, missing: str) -> None:
    message = (
        f"{obligation.obligation_type.value} {obligation.obligation_id} has no {missing}; "
        "next due date is undetermined"
    )
    logger.warning(message)
    warnings.warn(message, MalformedScheduleWarning, stacklevel=3)
    return None
