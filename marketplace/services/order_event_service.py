# marketplace/services/order_event_service.py

from typing import List, Optional
from sqlmodel import Session, select
from marketplace.models.order_event import OrderEvent, OrderEventType


def log_order_event(
    session: Session,
    order_id: int,
    event_type: OrderEventType,
    label: str,
    created_by: str = "system",
    meta: Optional[dict] = None,
) -> OrderEvent:
    """
    Append a line to the order timeline.
    Joins the caller's transaction; the caller commits.
    """
    event = OrderEvent(
        order_id=order_id,
        event_type=OrderEventType(event_type),
        label=label,
        meta=meta,
        created_by=created_by,
    )
    session.add(event)
    return event


def list_order_events(session: Session, order_id: int) -> List[OrderEvent]:
    return session.exec(
        select(OrderEvent)
        .where(OrderEvent.order_id == order_id)
        .order_by(OrderEvent.created_at, OrderEvent.id)
    ).all()
