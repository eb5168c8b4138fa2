from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, JSON
from typing import List, Optional
from datetime import datetime

from marketplace.constants.order_status import OrderStatus, PaymentMethod, PaymentStatus
from marketplace.models.order_item import OrderItem


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(index=True, unique=True)  # ORD000001
    customer_id: int = Field(foreign_key="user.id", index=True)

    # copied at checkout, never live references to the address book
    shipping_address: dict = Field(sa_column=Column(JSON, nullable=False))
    billing_address: dict = Field(sa_column=Column(JSON, nullable=False))

    subtotal: float
    shipping_charges: float = Field(default=0)
    coupon_code: Optional[str] = None
    coupon_discount: float = Field(default=0)
    total: float

    payment_method: PaymentMethod
    payment_status: PaymentStatus = Field(default=PaymentStatus.pending)
    gateway_order_id: Optional[str] = Field(default=None, index=True)
    gateway_payment_id: Optional[str] = None
    refunded_amount: float = Field(default=0)

    status: OrderStatus = Field(default=OrderStatus.pending)
    estimated_delivery: Optional[datetime] = None
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"order_by": "OrderItem.id"},
    )
