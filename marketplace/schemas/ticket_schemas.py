from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from marketplace.constants.ticket_status import TicketStatus, TicketType


class TicketCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    order_number: str
    type: TicketType
    description: str = Field(min_length=1)
    images: List[str] = Field(default_factory=list, max_length=10)
    video: Optional[str] = None
    # customers must name the vendor; vendors file against themselves
    vendor_id: Optional[int] = None


class TicketResolveRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    resolution: str
    accept: bool


class TicketOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticket_number: str
    vendor_id: int
    order_number: str
    type: TicketType
    description: str
    images: List[str] = []
    video: Optional[str] = None
    status: TicketStatus
    resolution: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
