from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class DiscountType(str, Enum):
    percentage = "percentage"
    fixed = "fixed"


class Coupon(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True, unique=True)  # stored upper-case
    description: str

    discount_type: DiscountType
    discount_value: float
    min_order_value: float = Field(default=0)
    max_discount: Optional[float] = None

    valid_from: datetime
    valid_until: datetime

    usage_limit: Optional[int] = None
    used_count: int = Field(default=0)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
