# backend/app/models/user_models.py

from pydantic import BaseModel, EmailStr
from typing import Optional


# -------------------------
# Registration model
# -------------------------
class RegisterIn(BaseModel):
    email: EmailStr
    password: str
    name: Optional[str] = None


# -------------------------
# Login model
# -------------------------
class LoginIn(BaseModel):
    email: EmailStr
    password: str


# -------------------------
# Token response
# -------------------------
class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


# -------------------------
# Basic user info
# -------------------------
class MeOut(BaseModel):
    id: str
    email: EmailStr
    name: Optional[str]
