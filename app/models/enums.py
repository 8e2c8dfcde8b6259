from enum import Enum

# owner id used for accounts, loans and debts that belong to the whole household
SHARED_OWNER = "shared"


class EntryType(str, Enum):
    income = "income"
    expense = "expense"


class AccountType(str, Enum):
    checking = "checking"
    savings = "savings"


class CheckStatus(str, Enum):
    pending = "pending"
    cleared = "cleared"


class ObligationType(str, Enum):
    check = "check"
    loan = "loan"
    debt = "debt"


class ScheduleKind(str, Enum):
    fixed_date = "fixed_date"
    installment_by_count = "installment_by_count"
    installment_by_day_of_month = "installment_by_day_of_month"


class Period(str, Enum):
    this_week = "thisWeek"
    last_week = "lastWeek"
    this_month = "thisMonth"
    last_month = "lastMonth"
    this_year = "thisYear"
