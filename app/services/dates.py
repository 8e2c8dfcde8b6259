import calendar
from datetime import date, datetime, time, timedelta
import pandas as pd
from app.models.enums import Period

WEEKDAYS = {name.lower(): index for index, name in enumerate(calendar.day_name)}


def add_months(value, months: int):
    """Advance ``value`` by ``months`` calendar months.

    Days past the end of the target month are clamped to its last day
    (2024-01-31 + 1 month -> 2024-02-29). Dates stay dates and datetimes keep
    their time of day.
    """
    shifted = pd.Timestamp(value) + pd.DateOffset(months=months)
    if isinstance(value, datetime):
        return shifted.to_pydatetime()
    return shifted.date()


def safe_due_date(start_date: date, months_ahead: int, due_day: int) -> date:
    temp = add_months(_as_date(start_date).replace(day=1), months_ahead)
    last_day = calendar.monthrange(temp.year, temp.month)[1]
    return temp.replace(day=min(due_day, last_day))


def start_of_day(value) -> datetime:
    if isinstance(value, datetime):
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime.combine(value, time.min)


def end_of_day(value) -> datetime:
    return start_of_day(value) + timedelta(days=1) - timedelta(microseconds=1)


def start_of_week(value, week_start: int | str = calendar.SATURDAY) -> datetime:
    first = _weekday_index(week_start)
    day = start_of_day(value)
    return day - timedelta(days=(day.weekday() - first) % 7)


def range_for_period(period: Period | str, now: datetime | None = None,
                     week_start: int | str = calendar.SATURDAY) -> tuple[datetime, datetime]:
    """Closed ``(from, to)`` interval of a named reporting period around ``now``."""
    period = Period(period)
    now = now or datetime.now()

    if period in (Period.this_week, Period.last_week):
        anchor = now if period == Period.this_week else now - timedelta(weeks=1)
        first = start_of_week(anchor, week_start)
        return first, end_of_day(first + timedelta(days=6))

    month_start = start_of_day(now).replace(day=1)
    if period == Period.this_month:
        month_end = (pd.Timestamp(month_start) + pd.offsets.MonthEnd(0)).to_pydatetime()
        return month_start, end_of_day(month_end)
    if period == Period.last_month:
        return add_months(month_start, -1), month_start - timedelta(microseconds=1)

    year_start = month_start.replace(month=1)
    return year_start, end_of_day(year_start.replace(month=12, day=31))


def _weekday_index(week_start: int | str) -> int:
    if isinstance(week_start, int):
        return week_start
    return WEEKDAYS[week_start.strip().lower()]


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value
