from fastapi import APIRouter, HTTPException, Depends
from uuid import UUID
from datetime import datetime, timezone
from app.models.schemas.payee import Payee, PayeeCreate, PayeeOut
from app.services.storage import log_action
from app.services.auth import get_current_user, get_household_store
from app.services.utils import page_params
from app.services.fetchers import fetch_record, fetch_or_404, paginate
from app.services.errors import DeletionBlockedError

router = APIRouter()

REFERENCING = ("checks", "loans", "debts", "entries")


@router.post("/")
def create_payee(payload: PayeeCreate, user=Depends(get_current_user), store=Depends(get_household_store)):
    name = payload.name.strip()
    if any(p["name"].strip().lower() == name.lower() for p in store.query("payees")):
        raise HTTPException(status_code=400, detail="Payee already exists")

    payee = Payee(household_id=store.household_id, name=name, phone_number=payload.phone_number)
    store.put("payees", payee)
    log_action(store, user["user_id"], "create", "payees", str(payee.payee_id), payload.model_dump())
    return {"message": "Payee created", "payee_id": str(payee.payee_id)}


@router.put("/{payee_id}")
def update_payee(payee_id: UUID, payload: PayeeCreate, user=Depends(get_current_user),
                 store=Depends(get_household_store)):
    with store.transaction() as txn:
        row = fetch_or_404(txn, "payees", payee_id)
        txn.put("payees", {**row, **payload.model_dump(), "updated_at": datetime.now(timezone.utc)})

    log_action(store, user["user_id"], "update", "payees", str(payee_id), payload.model_dump())
    return {"message": "Payee updated", "payee_id": str(payee_id)}


@router.delete("/{payee_id}")
def delete_payee(payee_id: UUID, user=Depends(get_current_user), store=Depends(get_household_store)):
    with store.transaction() as txn:
        row = fetch_or_404(txn, "payees", payee_id)
        for collection in REFERENCING:
            if txn.query(collection, payee_id=payee_id):
                raise DeletionBlockedError(f"Payee is still referenced by {collection}")
        txn.delete("payees", row)

    log_action(store, user["user_id"], "delete", "payees", str(payee_id))
    return {"message": "Payee deleted", "payee_id": str(payee_id)}


@router.get("/", response_model=list[PayeeOut])
def list_payees(store=Depends(get_household_store), page=Depends(page_params)):
    rows = sorted(store.query("payees"), key=lambda r: r["name"].lower())
    return paginate(rows, page)


@router.get("/{payee_id}", response_model=PayeeOut)
def get_payee(payee_id: UUID, store=Depends(get_household_store)):
    return fetch_record(store, "payees", payee_id)
