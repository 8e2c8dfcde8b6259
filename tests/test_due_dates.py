from datetime import date, datetime, timezone
from uuid import uuid4
import pytest
from app.models.enums import ObligationType, ScheduleKind
from app.services.due_dates import (
    MalformedScheduleWarning,
    Obligation,
    next_due_date,
    next_due_date_by_day,
)


def make_obligation(**overrides) -> Obligation:
    fields = {
        "obligation_type": ObligationType.loan,
        "obligation_id": uuid4(),
        "title": "Car",
        "owner_id": "sara",
        "amount": 600_000,
        "remaining_amount": 600_000,
        "schedule_kind": ScheduleKind.installment_by_count,
        "start_date": date(2024, 1, 1),
        "first_installment_date": date(2024, 1, 15),
        "number_of_installments": 6,
        "paid_installments": 0,
        "installment_amount": 100_000,
    }
    fields.update(overrides)
    return Obligation(**fields)


def test_installments_advance_one_month_per_payment():
    assert next_due_date(make_obligation(paid_installments=5, remaining_amount=100_000)) == date(2024, 6, 15)


def test_first_installment_is_due_on_its_anchor():
    today = date.today()
    assert next_due_date(make_obligation(first_installment_date=today)) == today


def test_future_anchor_is_returned_as_is():
    obligation = make_obligation(first_installment_date=date(2030, 3, 1))
    assert next_due_date(obligation, today=date(2024, 1, 1)) == date(2030, 3, 1)


def test_missing_paid_counter_counts_as_zero():
    assert next_due_date(make_obligation(paid_installments=None)) == date(2024, 1, 15)


def test_history_length_is_the_paid_count():
    history = [{"payment_date": "2024-01-15T09:00:00+00:00"}, {"payment_date": "2024-02-14T09:00:00+00:00"}]
    assert next_due_date(make_obligation(paid_installments=0), history=history) == date(2024, 3, 15)


def test_installment_count_does_not_stop_the_schedule():
    obligation = make_obligation(number_of_installments=3, paid_installments=4, remaining_amount=50_000)
    assert next_due_date(obligation) == date(2024, 5, 15)


def test_anchor_clamps_at_month_end():
    obligation = make_obligation(first_installment_date=date(2024, 1, 31), paid_installments=1)
    assert next_due_date(obligation) == date(2024, 2, 29)


def test_anchor_falls_back_to_payment_day_after_start():
    obligation = make_obligation(first_installment_date=None, start_date=date(2024, 1, 20), payment_day=5)
    assert next_due_date(obligation) == date(2024, 2, 5)


@pytest.mark.parametrize("kind", list(ScheduleKind))
def test_settled_obligation_has_no_due_date(kind):
    obligation = make_obligation(schedule_kind=kind, remaining_amount=0, due_date=date(2024, 2, 1), payment_day=10)
    assert next_due_date(obligation) is None


def test_fixed_date_is_returned_unmodified():
    obligation = make_obligation(
        obligation_type=ObligationType.check,
        schedule_kind=ScheduleKind.fixed_date,
        due_date=date(2024, 2, 29),
        first_installment_date=None,
    )
    assert next_due_date(obligation, today=date(2025, 1, 1)) == date(2024, 2, 29)


def test_installment_without_anchor_warns_and_returns_none():
    obligation = make_obligation(first_installment_date=None, payment_day=None)
    with pytest.warns(MalformedScheduleWarning):
        assert next_due_date(obligation) is None


def test_fixed_date_without_due_date_warns():
    obligation = make_obligation(schedule_kind=ScheduleKind.fixed_date, due_date=None)
    with pytest.warns(MalformedScheduleWarning):
        assert next_due_date(obligation) is None


class TestByDayOfMonth:
    def test_this_month_when_not_yet_past(self):
        assert next_due_date_by_day(date(2024, 1, 1), 10, today=date(2024, 3, 5)) == date(2024, 3, 10)

    def test_due_today_is_still_this_month(self):
        assert next_due_date_by_day(date(2024, 1, 1), 10, today=date(2024, 3, 10)) == date(2024, 3, 10)

    def test_next_month_once_past(self):
        assert next_due_date_by_day(date(2024, 1, 1), 10, today=date(2024, 3, 15)) == date(2024, 4, 10)

    def test_not_started_uses_first_occurrence_after_start(self):
        assert next_due_date_by_day(date(2024, 6, 12), 10, today=date(2024, 3, 5)) == date(2024, 7, 10)

    def test_payment_in_candidate_month_moves_to_next(self):
        result = next_due_date_by_day(date(2024, 1, 1), 10, last_payment_date=date(2024, 3, 2),
                                      today=date(2024, 3, 5))
        assert result == date(2024, 4, 10)

    def test_short_month_clamps(self):
        assert next_due_date_by_day(date(2024, 1, 1), 31, today=date(2024, 2, 10)) == date(2024, 2, 29)

    def test_resolver_reads_last_payment_from_history(self):
        obligation = make_obligation(
            obligation_type=ObligationType.debt,
            schedule_kind=ScheduleKind.installment_by_day_of_month,
            first_installment_date=None,
            payment_day=10,
        )
        history = [{"payment_date": datetime(2024, 3, 2, tzinfo=timezone.utc)}]
        assert next_due_date(obligation, history=history, today=date(2024, 3, 5)) == date(2024, 4, 10)

    def test_history_read_back_from_storage_uses_utc_suffix(self):
        obligation = make_obligation(
            obligation_type=ObligationType.debt,
            schedule_kind=ScheduleKind.installment_by_day_of_month,
            first_installment_date=None,
            payment_day=10,
        )
        history = [{"payment_date": "2024-03-02T09:15:00.123456Z"}]
        assert next_due_date(obligation, history=history, today=date(2024, 3, 5)) == date(2024, 4, 10)
