from pydantic import BaseModel, ConfigDict, Field, model_validator
from uuid import UUID, uuid4
from datetime import date, datetime, timezone


class Loan(BaseModel):
    loan_id: UUID = Field(default_factory=uuid4)
    household_id: UUID
    registered_by_user_id: str
    owner_id: str
    payee_id: UUID | None = None
    title: str
    amount: int
    installment_amount: int = 0
    remaining_amount: int
    start_date: date
    first_installment_date: date | None = None
    payment_day: int | None = None   # day of month for payments
    number_of_installments: int = 0
    paid_installments: int = 0
    deposit_to_account_id: UUID | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = True
    is_deleted: bool = False


class LoanCreate(BaseModel):
    owner_id: str = Field(min_length=1)
    payee_id: UUID | None = None
    title: str = Field(min_length=1)
    amount: int = Field(gt=0)
    installment_amount: int = Field(default=0, ge=0)
    number_of_installments: int = Field(default=0, ge=0)
    start_date: date
    first_installment_date: date | None = None
    payment_day: int | None = Field(default=None, ge=1, le=31)
    deposit_to_account_id: UUID | None = None

    @model_validator(mode="after")
    def _has_schedule(self):
        if self.first_installment_date is None and self.payment_day is None:
            raise ValueError("first_installment_date or payment_day is required")
        return self


class LoanPaymentRequest(BaseModel):
    bank_account_id: UUID
    # defaults to the installment amount, capped at the remaining amount
    amount: int | None = None


class LoanOut(BaseModel):
    loan_id: UUID
    household_id: UUID
    registered_by_user_id: str
    owner_id: str
    payee_id: UUID | None = None
    title: str
    amount: int
    installment_amount: int
    remaining_amount: int
    start_date: date
    first_installment_date: date | None = None
    payment_day: int | None = None
    number_of_installments: int
    paid_installments: int
    deposit_to_account_id: UUID | None = None
    next_due_date: date | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
