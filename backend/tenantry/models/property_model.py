from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone


class PropertyCreate(BaseModel):
    """Payload sent by the admin when a property is created or edited."""
    address: str = Field(..., min_length=1)
    unit_number: Optional[str] = None
    rent_amount: float = Field(..., gt=0, description="Monthly rent in USD")


class Property(BaseModel):
    id: str = Field(..., alias="_id")
    address: str
    unit_number: Optional[str] = None
    rent_amount: float

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {
        "from_attributes": True,
        "populate_by_name": True
    }
