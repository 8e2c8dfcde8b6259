from pydantic import BaseModel
from uuid import UUID
from datetime import date
from app.models.enums import ObligationType


class Deadline(BaseModel):
    obligation_type: ObligationType
    obligation_id: UUID
    title: str
    due_date: date
    amount: int
    owner_id: str
