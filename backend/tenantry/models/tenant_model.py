from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime, timezone


class TenantCreate(BaseModel):
    """Admin form for a new tenant. Creates the login account too."""
    email: EmailStr
    password: str
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    property_id: Optional[str] = None
    payment_due_day: int = Field(default=1, ge=1, le=31)


class TenantUpdate(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    property_id: Optional[str] = None
    payment_due_day: int = Field(default=1, ge=1, le=31)


class Tenant(BaseModel):
    id: str = Field(..., alias="_id")
    user_id: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    property_id: Optional[str] = None
    payment_due_day: int = Field(default=1, ge=1, le=31)

    # Processor references
    stripe_customer_id: Optional[str] = None
    moov_account_id: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    model_config = {
        "from_attributes": True,
        "populate_by_name": True
    }
