from fastapi import APIRouter, HTTPException, Depends
from uuid import UUID
from datetime import datetime, timezone
from app.models.schemas.category import Category, CategoryCreate, CategoryOut
from app.services.storage import log_action
from app.services.auth import get_current_user, get_household_store
from app.services.utils import page_params
from app.services.fetchers import fetch_record, fetch_or_404, paginate
from app.services.errors import DeletionBlockedError

router = APIRouter()


@router.post("/")
def create_category(payload: CategoryCreate, user=Depends(get_current_user), store=Depends(get_household_store)):
    name = payload.name.strip()
    if any(c["name"].strip().lower() == name.lower() for c in store.query("categories")):
        raise HTTPException(status_code=400, detail="Category already exists")

    category = Category(household_id=store.household_id, name=name, description=payload.description)
    store.put("categories", category)
    log_action(store, user["user_id"], "create", "categories", str(category.category_id), payload.model_dump())
    return {"message": "Category created", "category_id": str(category.category_id)}


@router.put("/{category_id}")
def update_category(category_id: UUID, payload: CategoryCreate, user=Depends(get_current_user),
                    store=Depends(get_household_store)):
    with store.transaction() as txn:
        row = fetch_or_404(txn, "categories", category_id)
        txn.put("categories", {**row, **payload.model_dump(), "updated_at": datetime.now(timezone.utc)})

    log_action(store, user["user_id"], "update", "categories", str(category_id), payload.model_dump())
    return {"message": "Category updated", "category_id": str(category_id)}


@router.delete("/{category_id}")
def delete_category(category_id: UUID, user=Depends(get_current_user), store=Depends(get_household_store)):
    with store.transaction() as txn:
        row = fetch_or_404(txn, "categories", category_id)
        for collection in ("checks", "entries"):
            if txn.query(collection, category_id=category_id):
                raise DeletionBlockedError(f"Category is still referenced by {collection}")
        txn.delete("categories", row)

    log_action(store, user["user_id"], "delete", "categories", str(category_id))
    return {"message": "Category deleted", "category_id": str(category_id)}


@router.get("/", response_model=list[CategoryOut])
def list_categories(store=Depends(get_household_store), page=Depends(page_params)):
    rows = sorted(store.query("categories"), key=lambda r: r["name"].lower())
    return paginate(rows, page)


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(category_id: UUID, store=Depends(get_household_store)):
    return fetch_record(store, "categories", category_id)
