from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID, uuid4
from datetime import datetime, timezone
from app.models.enums import ObligationType


class Payment(BaseModel):
    """A single payment (or check clearance) against an obligation.

    Payments are never edited. They disappear only when reversed, which also
    removes the expense recorded in ``expense_id``.
    """

    payment_id: UUID = Field(default_factory=uuid4)
    household_id: UUID
    registered_by_user_id: str
    obligation_type: ObligationType
    obligation_id: UUID
    bank_account_id: UUID
    amount: int
    payment_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expense_id: UUID
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = True
    is_deleted: bool = False


class PaymentOut(BaseModel):
    payment_id: UUID
    registered_by_user_id: str
    obligation_type: ObligationType
    obligation_id: UUID
    bank_account_id: UUID
    amount: int
    payment_date: datetime
    expense_id: UUID

    model_config = ConfigDict(from_attributes=True)
