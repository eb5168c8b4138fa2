from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON


class OrderEventType(str, Enum):
    order_placed = "order_placed"
    payment_verified = "payment_verified"
    payment_failed = "payment_failed"
    item_status_changed = "item_status_changed"
    order_cancelled = "order_cancelled"
    refund_issued = "refund_issued"
    ticket_opened = "ticket_opened"


class OrderEvent(SQLModel, table=True):
    """One line of an order's timeline. Rows are only ever inserted."""

    __tablename__ = "order_event"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)

    event_type: OrderEventType = Field(index=True)
    # human readable line shown on the timeline, e.g. "Order ORD000001 placed"
    label: str
    # who did it: "system", "user:<id>", "vendor:<id>" or "admin:<id>"
    created_by: str = Field(default="system")
    meta: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
