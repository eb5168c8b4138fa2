from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional
from datetime import datetime


class Vendor(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True)

    business_name: str
    business_email: str
    business_phone: str
    gstin: Optional[str] = None
    pan_number: Optional[str] = None
    address: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # platform commission, percent of each line total
    commission: float = Field(default=10, ge=0, le=100)

    is_approved: bool = Field(default=False)
    is_active: bool = Field(default=True)

    # running stats, credited when an item is delivered
    total_orders: int = Field(default=0)
    total_revenue: float = Field(default=0)
    pending_payment: float = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
