from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class PaymentInitIn(BaseModel):
    order_id: int


class PaymentInitOut(BaseModel):
    authorization_url: str
    access_code: Optional[str] = None
    reference: str
    order_id: int
    amount: int


class PaystackEvent(BaseModel):
    """Outer envelope; `data` is only interpreted for the charge events."""
    event: str
    data: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class ChargeCustomer(BaseModel):
    email: str

    model_config = ConfigDict(extra="ignore")


class ChargeMetadata(BaseModel):
    order_id: int

    model_config = ConfigDict(extra="ignore")


class ChargeData(BaseModel):
    reference: str
    amount: int = Field(..., ge=0)   # kobo
    currency: Optional[str] = None
    channel: Optional[str] = None
    status: Optional[str] = None
    paid_at: Optional[datetime] = None
    customer: ChargeCustomer
    metadata: ChargeMetadata

    model_config = ConfigDict(extra="ignore")
