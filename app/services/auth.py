import jwt
from fastapi import HTTPException, Depends
from datetime import datetime, timedelta, timezone
from fastapi.security import OAuth2PasswordBearer
from app.config import settings
from app.services.storage import DocumentStore, get_store

# tokens are issued by the identity service; this API only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/token")
SECRET_KEY = settings.secret_key
ALGORITHM = settings.encoding_algorithm
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    for claim in ("sub", "household_id", "owner_id"):
        if claim in to_encode:
            to_encode[claim] = str(to_encode[claim])
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def get_current_user(token: str = Depends(oauth2_scheme)):
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    household_id = payload.get("household_id")
    if user_id is None or household_id is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {
        "user_id": user_id,
        "household_id": household_id,
        "owner_id": payload.get("owner_id") or user_id,
    }


def get_household_store(user=Depends(get_current_user)) -> DocumentStore:
    """Store scoped to the caller's household namespace."""
    return get_store().for_household(user["household_id"])
