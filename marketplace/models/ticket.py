from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import List, Optional
from datetime import datetime

from marketplace.constants.ticket_status import TicketStatus, TicketType


class Ticket(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    ticket_number: str = Field(index=True, unique=True)  # TKT000001

    vendor_id: int = Field(foreign_key="vendor.id", index=True)
    order_id: int = Field(foreign_key="orders.id", index=True)

    type: TicketType
    description: str
    images: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    video: Optional[str] = None

    status: TicketStatus = Field(default=TicketStatus.open)
    resolution: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    resolved_at: Optional[datetime] = None
