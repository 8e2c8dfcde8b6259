from pydantic import BaseModel, ConfigDict, Field, model_validator
from uuid import UUID, uuid4
from datetime import datetime, timezone, date


class Debt(BaseModel):
    debt_id: UUID = Field(default_factory=uuid4)
    household_id: UUID
    registered_by_user_id: str
    owner_id: str
    payee_id: UUID
    description: str
    amount: int
    remaining_amount: int
    start_date: date
    is_installment: bool = False
    due_date: date | None = None   # single-payment debts
    first_installment_date: date | None = None
    payment_day: int | None = None   # day of month for payments
    installment_amount: int | None = None
    number_of_installments: int = 0
    paid_installments: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = True
    is_deleted: bool = False


class DebtCreate(BaseModel):
    owner_id: str = Field(min_length=1)
    payee_id: UUID
    description: str = Field(min_length=1)
    amount: int = Field(gt=0)
    start_date: date
    is_installment: bool = False
    due_date: date | None = None
    first_installment_date: date | None = None
    payment_day: int | None = Field(default=None, ge=1, le=31)
    installment_amount: int | None = Field(default=None, gt=0)
    number_of_installments: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _has_schedule(self):
        if not self.is_installment and self.due_date is None:
            raise ValueError("single-payment debts need a due_date")
        if self.is_installment and self.first_installment_date is None and self.payment_day is None:
            raise ValueError("installment debts need first_installment_date or payment_day")
        return self


class DebtPaymentRequest(BaseModel):
    bank_account_id: UUID
    amount: int


class DebtOut(BaseModel):
    debt_id: UUID
    household_id: UUID
    registered_by_user_id: str
    owner_id: str
    payee_id: UUID
    description: str
    amount: int
    remaining_amount: int
    start_date: date
    is_installment: bool
    due_date: date | None = None
    first_installment_date: date | None = None
    payment_day: int | None = None
    installment_amount: int | None = None
    number_of_installments: int
    paid_installments: int
    next_due_date: date | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
