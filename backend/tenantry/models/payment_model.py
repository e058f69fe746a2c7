# models/payment_model.py
from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime, timezone

PaymentStatus = Literal["pending", "processing", "succeeded", "failed"]
PaymentMethodType = Literal["card", "us_bank_account", "moov_ach"]


def _now():
    return datetime.now(timezone.utc)


class Payment(BaseModel):
    """One rent payment for one tenant and due date."""
    id: str = Field(..., alias="_id")
    tenant_id: str
    property_id: str

    amount: float
    processing_fee: Optional[float] = None
    status: PaymentStatus = "pending"

    # Processor references
    moov_transfer_id: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = None
    payment_method_id: Optional[str] = None

    due_date: str  # YYYY-MM-DD
    paid_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    model_config = {
        "from_attributes": True,
        "populate_by_name": True
    }


class PaymentMethod(BaseModel):
    id: str = Field(..., alias="_id")
    tenant_id: str
    type: PaymentMethodType
    stripe_payment_method_id: Optional[str] = None
    moov_payment_method_id: Optional[str] = None
    last4: str = ""
    bank_name: Optional[str] = None
    is_default: bool = False
    created_at: datetime = Field(default_factory=_now)

    model_config = {
        "from_attributes": True,
        "populate_by_name": True
    }


class AutoPayment(BaseModel):
    id: str = Field(..., alias="_id")
    tenant_id: str
    payment_method_id: str
    day_of_month: int = Field(..., ge=1, le=31)
    is_active: bool = True
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    model_config = {
        "from_attributes": True,
        "populate_by_name": True
    }


# ==================== Request bodies ====================
class ProcessPaymentRequest(BaseModel):
    payment_id: str
    payment_method_id: str


class CheckStatusRequest(BaseModel):
    payment_id: str


class GeneratePaymentsRequest(BaseModel):
    tenant_id: Optional[str] = None
    months_ahead: int = Field(default=1, ge=1, le=12)


class StripePaymentMethodIn(BaseModel):
    stripe_payment_method_id: str
    type: Literal["card", "us_bank_account"]
    last4: str = Field(..., min_length=4, max_length=4)


class MoovBankIn(BaseModel):
    moov_payment_method_id: str
    last4: str = Field(..., min_length=4, max_length=4)
    bank_name: Optional[str] = None
    moov_account_id: Optional[str] = None


class AutoPayIn(BaseModel):
    payment_method_id: str
    day_of_month: int = Field(..., ge=1, le=31)


class AutoPayUpdate(BaseModel):
    payment_method_id: Optional[str] = None
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    is_active: Optional[bool] = None
