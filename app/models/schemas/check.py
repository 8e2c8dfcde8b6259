from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID, uuid4
from datetime import date, datetime, timezone
from app.models.enums import CheckStatus


class Check(BaseModel):
    check_id: UUID = Field(default_factory=uuid4)
    household_id: UUID
    registered_by_user_id: str
    owner_id: str
    bank_account_id: UUID
    payee_id: UUID
    category_id: UUID | None = None
    amount: int
    issue_date: date
    due_date: date
    status: CheckStatus = CheckStatus.pending
    cleared_date: date | None = None
    description: str = ""
    sayad_id: str = ""
    serial_number: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = True
    is_deleted: bool = False


class CheckCreate(BaseModel):
    owner_id: str = Field(min_length=1)
    bank_account_id: UUID
    payee_id: UUID
    category_id: UUID | None = None
    amount: int = Field(gt=0)
    issue_date: date
    due_date: date
    description: str = ""
    sayad_id: str = ""
    serial_number: str = ""


class CheckUpdate(BaseModel):
    payee_id: UUID | None = None
    category_id: UUID | None = None
    amount: int | None = Field(default=None, gt=0)
    issue_date: date | None = None
    due_date: date | None = None
    description: str | None = None
    sayad_id: str | None = None
    serial_number: str | None = None


class CheckOut(BaseModel):
    check_id: UUID
    household_id: UUID
    registered_by_user_id: str
    owner_id: str
    bank_account_id: UUID
    payee_id: UUID
    category_id: UUID | None = None
    amount: int
    issue_date: date
    due_date: date
    status: CheckStatus
    cleared_date: date | None = None
    description: str = ""
    sayad_id: str = ""
    serial_number: str = ""
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
