from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from marketplace.constants.order_status import (
    ItemStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from marketplace.models.order_event import OrderEventType


class AddressSnapshot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    phone: str = Field(pattern=r"^\d{10}$")
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str = Field(pattern=r"^\d{6}$")


class PlaceOrderRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    shipping_address: AddressSnapshot
    billing_address: Optional[AddressSnapshot] = None
    payment_method: PaymentMethod
    coupon_code: Optional[str] = None
    notes: Optional[str] = None


class VerifyPaymentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    order_number: str
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: str
    razorpay_signature: str


class ItemStatusUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: ItemStatus
    tracking_id: Optional[str] = None


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    vendor_id: int
    name: str
    image: Optional[str] = None
    size: str
    color: str
    quantity: int
    mrp: float
    selling_price: float
    vendor_discount: float
    website_discount: float
    final_price: float
    line_total: float
    status: ItemStatus
    tracking_id: Optional[str] = None
    delivered_at: Optional[datetime] = None
    commission: float
    vendor_earning: float


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_number: str
    customer_id: int
    items: List[OrderItemOut]
    shipping_address: Dict[str, Any]
    billing_address: Dict[str, Any]
    subtotal: float
    shipping_charges: float
    coupon_code: Optional[str] = None
    coupon_discount: float
    total: float
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    refunded_amount: float = 0
    status: OrderStatus
    estimated_delivery: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class RazorpayOrderOut(BaseModel):
    id: str
    amount: int   # paise
    currency: str = "INR"
    key: Optional[str] = None


class PlaceOrderResponse(BaseModel):
    message: str
    order: OrderOut
    razorpay_order: Optional[RazorpayOrderOut] = None


class PaymentStatusResponse(BaseModel):
    message: str
    order_number: str
    payment_status: PaymentStatus


class OrderEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_type: OrderEventType
    label: str
    meta: Optional[Dict[str, Any]] = None
    created_by: str
    created_at: datetime
