from fastapi import APIRouter, Depends, Query
from app.models.schemas.deadline import Deadline
from app.services.auth import get_household_store
from app.services.obligations import upcoming_deadlines

router = APIRouter()


@router.get("/", response_model=list[Deadline])
def list_due_dates(limit: int | None = Query(None, ge=1), store=Depends(get_household_store)):
    return upcoming_deadlines(store, limit=limit)
