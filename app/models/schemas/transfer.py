from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID, uuid4
from datetime import datetime, timezone


class Transfer(BaseModel):
    transfer_id: UUID = Field(default_factory=uuid4)
    household_id: UUID
    registered_by_user_id: str
    from_bank_account_id: UUID
    to_bank_account_id: UUID
    amount: int
    transfer_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    description: str = ""
    from_balance_before: int
    from_balance_after: int
    to_balance_before: int
    to_balance_after: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = True
    is_deleted: bool = False


class TransferCreate(BaseModel):
    from_bank_account_id: UUID
    to_bank_account_id: UUID
    amount: int = Field(gt=0)
    description: str = ""


class TransferOut(BaseModel):
    transfer_id: UUID
    registered_by_user_id: str
    from_bank_account_id: UUID
    to_bank_account_id: UUID
    amount: int
    transfer_date: datetime
    description: str = ""
    from_balance_before: int
    from_balance_after: int
    to_balance_before: int
    to_balance_after: int

    model_config = ConfigDict(from_attributes=True)
