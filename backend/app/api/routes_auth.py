# backend/app/api/routes_auth.py

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user_id, get_db
from app.core.exceptions import AuthorizationError, DuplicateResourceError, ResourceNotFoundError
from app.core.security import create_access_token, get_password_hash, verify_password
from app.db.sqlite_memory import SQLiteMemory
from app.models.user_models import LoginIn, MeOut, RegisterIn, TokenOut

router = APIRouter(prefix="/auth", tags=["auth"])


# --------------------------
# REGISTER
# --------------------------
@router.post("/register", response_model=TokenOut)
def register(data: RegisterIn, db: SQLiteMemory = Depends(get_db)):
    if db.get_user_by_email(data.email):
        raise DuplicateResourceError("Email already registered")

    user_id = db.create_user(
        email=data.email,
        name=data.name or "",
        hashed_password=get_password_hash(data.password),
    )
    return TokenOut(access_token=create_access_token(subject=user_id))


# --------------------------
# LOGIN
# --------------------------
@router.post("/login", response_model=TokenOut)
def login(data: LoginIn, db: SQLiteMemory = Depends(get_db)):
    user = db.get_user_by_email(data.email)
    if not user or not verify_password(data.password, user["hashed_password"]):
        raise AuthorizationError("Invalid credentials")

    return TokenOut(access_token=create_access_token(subject=user["id"]))


# --------------------------
# ME
# --------------------------
@router.get("/me", response_model=MeOut)
def me(user_id: str = Depends(get_current_user_id), db: SQLiteMemory = Depends(get_db)):
    user = db.get_user_by_id(user_id)
    if not user:
        raise ResourceNotFoundError("User not found")
    return MeOut(id=user["id"], email=user["email"], name=user["name"])
