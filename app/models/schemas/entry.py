from pydantic import BaseModel, ConfigDict, Field
from app.models.enums import EntryType, ObligationType
from uuid import UUID, uuid4
from datetime import datetime, timezone, date


class Entry(BaseModel):
    entry_id: UUID = Field(default_factory=uuid4)
    household_id: UUID
    registered_by_user_id: str
    owner_id: str
    bank_account_id: UUID
    category_id: UUID | None = None
    payee_id: UUID | None = None
    type: EntryType
    amount: int
    entry_date: date
    description: str = ""
    expense_for: str | None = None
    # set on entries generated by a payment against a check, loan or debt
    payment_id: UUID | None = None
    obligation_type: ObligationType | None = None
    obligation_id: UUID | None = None
    balance_before: int | None = None
    balance_after: int | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = True
    is_deleted: bool = False

    @property
    def is_system_generated(self) -> bool:
        return self.payment_id is not None


class EntryCreate(BaseModel):
    type: EntryType
    bank_account_id: UUID
    category_id: UUID | None = None
    payee_id: UUID | None = None
    amount: int = Field(gt=0)
    entry_date: date
    description: str = ""
    expense_for: str | None = None


class EntryOut(BaseModel):
    entry_id: UUID
    household_id: UUID
    registered_by_user_id: str
    owner_id: str
    bank_account_id: UUID
    category_id: UUID | None = None
    payee_id: UUID | None = None
    type: EntryType
    amount: int
    entry_date: date
    description: str | None = None
    expense_for: str | None = None
    payment_id: UUID | None = None
    obligation_type: ObligationType | None = None
    obligation_id: UUID | None = None
    balance_before: int | None = None
    balance_after: int | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
