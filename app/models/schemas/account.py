from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID, uuid4
from datetime import datetime, timezone
from app.models.enums import AccountType


class BankAccount(BaseModel):
    bank_account_id: UUID = Field(default_factory=uuid4)
    household_id: UUID
    owner_id: str
    bank_name: str
    account_number: str = ""
    card_number: str = ""
    account_type: AccountType = AccountType.checking
    balance: int
    initial_balance: int
    blocked_balance: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = True
    is_deleted: bool = False

    @property
    def available_balance(self) -> int:
        return self.balance - self.blocked_balance


class BankAccountCreate(BaseModel):
    owner_id: str = Field(min_length=1)
    bank_name: str = Field(min_length=1)
    account_number: str = ""
    card_number: str = ""
    account_type: AccountType = AccountType.checking
    initial_balance: int = 0


class BankAccountUpdate(BaseModel):
    # balance is deliberately absent: it only moves through ledger operations
    bank_name: str | None = None
    account_number: str | None = None
    card_number: str | None = None
    blocked_balance: int | None = Field(default=None, ge=0)


class BankAccountOut(BaseModel):
    bank_account_id: UUID
    household_id: UUID
    owner_id: str
    bank_name: str
    account_number: str
    card_number: str
    account_type: AccountType
    balance: int
    initial_balance: int
    blocked_balance: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
