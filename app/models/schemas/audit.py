from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime, timezone


class AuditLog(BaseModel):
    log_id: UUID = Field(default_factory=uuid4)
    household_id: UUID
    user_id: str | None = None  # who performed action (optional for system tasks)
    action: str  # "create", "clear", "pay", "delete", ...
    resource_type: str  # "checks", "loans", "entries", etc.
    resource_id: str | None = None  # affected record
    details: str | None = None  # request payload, amounts, balances
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = True
    is_deleted: bool = False
