from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

PHONE_PATTERN = r"^\d{10}$"


class VendorRegister(BaseModel):
    model_config = ConfigDict(extra="forbid")

    business_name: str = Field(min_length=1)
    business_email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    business_phone: str = Field(pattern=PHONE_PATTERN)
    gstin: Optional[str] = Field(default=None, pattern=r"^[0-9A-Z]{15}$")
    pan_number: Optional[str] = Field(default=None, pattern=r"^[A-Z]{5}[0-9]{4}[A-Z]$")
    address: Optional[Dict[str, Any]] = None


class VendorProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    business_name: Optional[str] = Field(default=None, min_length=1)
    business_email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    business_phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    gstin: Optional[str] = Field(default=None, pattern=r"^[0-9A-Z]{15}$")
    pan_number: Optional[str] = Field(default=None, pattern=r"^[A-Z]{5}[0-9]{4}[A-Z]$")
    address: Optional[Dict[str, Any]] = None


class CommissionUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    commission: float = Field(ge=0, le=100)


class VendorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    business_name: str
    business_email: str
    business_phone: str
    gstin: Optional[str] = None
    pan_number: Optional[str] = None
    address: Optional[Dict[str, Any]] = None
    commission: float
    is_approved: bool
    is_active: bool
    total_orders: int
    total_revenue: float
    pending_payment: float
    created_at: datetime
