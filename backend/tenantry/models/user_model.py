from pydantic import BaseModel, EmailStr, Field
from typing import Literal
from datetime import datetime, timezone


class User(BaseModel):
    """Login account. Admins manage everything, tenants see their own data."""

    id: str = Field(..., alias="_id")
    email: EmailStr
    password_hash: str
    role: Literal["admin", "tenant"] = "tenant"
    must_change_password: bool = False

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def public_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "needs_password_change": self.must_change_password,
        }

    model_config = {
        "from_attributes": True,
        "populate_by_name": True
    }
