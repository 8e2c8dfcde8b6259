from fastapi import APIRouter, Depends, Query
import pandas as pd
from app.services.auth import get_household_store
from app.services.utils import page_params

router = APIRouter()


@router.get("/logs")
def list_audit_logs(
    user_id: str | None = Query(None),
    resource_type: str | None = Query(None),
    resource_id: str | None = Query(None),
    action: str | None = Query(None),
    start: str | None = Query(None),
    end: str | None = Query(None),
    store=Depends(get_household_store),
    page=Depends(page_params),
):
    df = store.current_frame("audit_logs")
    if df.empty:
        return []

    if user_id:
        df = df[df["user_id"] == user_id]
    if resource_type:
        df = df[df["resource_type"] == resource_type]
    if resource_id:
        df = df[df["resource_id"] == resource_id]
    if action:
        df = df[df["action"] == action]

    df = df.assign(timestamp=pd.to_datetime(df["timestamp"], utc=True))
    if start:
        df = df[df["timestamp"] >= pd.to_datetime(start, utc=True)]
    if end:
        df = df[df["timestamp"] <= pd.to_datetime(end, utc=True)]

    # newest first
    df = df.sort_values(by="timestamp", ascending=False)

    # pagination slice
    df = df.iloc[page["offset"]: page["offset"] + page["limit"]]

    df = df.drop(columns=["is_current", "is_deleted"])
    return df.astype(object).where(df.notna(), None).to_dict(orient="records")
