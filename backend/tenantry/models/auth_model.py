# models/auth_model.py
from pydantic import BaseModel, EmailStr
from typing import Literal


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class SessionUser(BaseModel):
    """What the signed session cookie carries."""
    user_id: str
    email: EmailStr
    role: Literal["admin", "tenant"]
