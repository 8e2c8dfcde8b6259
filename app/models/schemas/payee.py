from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID, uuid4
from datetime import datetime, timezone


class Payee(BaseModel):
    payee_id: UUID = Field(default_factory=uuid4)
    household_id: UUID
    name: str
    phone_number: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = True
    is_deleted: bool = False


class PayeeCreate(BaseModel):
    name: str = Field(min_length=1)
    phone_number: str | None = None


class PayeeOut(BaseModel):
    payee_id: UUID
    name: str
    phone_number: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
