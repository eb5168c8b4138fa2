# marketplace/services/ticket_service.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from marketplace.config import settings
from marketplace.constants.order_status import ItemStatus
from marketplace.constants.ticket_status import ALLOWED_TRANSITIONS, TicketStatus, TicketType
from marketplace.errors import (
    InvalidState,
    InvalidTransition,
    TicketNotFound,
    ValidationError,
    VendorNotFound,
)
from marketplace.models.order import Order
from marketplace.models.order_event import OrderEventType
from marketplace.models.ticket import Ticket
from marketplace.models.vendor import Vendor
from marketplace.services.order_event_service import log_order_event
from marketplace.services.order_service import get_order
from marketplace.services.sequence_service import next_ticket_number

logger = logging.getLogger(__name__)


def create_ticket(
    session: Session,
    *,
    vendor_id: int,
    order_number: str,
    type: TicketType,
    description: str,
    images: Optional[List[str]] = None,
    video: Optional[str] = None,
    created_by: str = "system",
) -> Ticket:
    """
    Open a support ticket about one vendor's share of an order.

    The vendor must have at least one item in the order; with
    ``TICKET_REQUIRES_DELIVERY`` one of those items must be delivered.
    """
    if not description or not description.strip():
        raise ValidationError("Description is required")

    order = get_order(session, order_number)

    vendor = session.get(Vendor, vendor_id)
    if not vendor:
        raise VendorNotFound(vendor_id)

    vendor_items = [item for item in order.items if item.vendor_id == vendor_id]
    if not vendor_items:
        raise ValidationError(
            "Vendor has no items in this order",
            order_number=order_number,
            vendor_id=vendor_id,
        )

    if settings.TICKET_REQUIRES_DELIVERY and not any(
        item.status == ItemStatus.delivered for item in vendor_items
    ):
        raise InvalidState(
            "Tickets can only be raised for delivered items",
            order_number=order_number,
            vendor_id=vendor_id,
        )

    try:
        ticket = Ticket(
            ticket_number=next_ticket_number(session),
            vendor_id=vendor_id,
            order_id=order.id,
            type=TicketType(type),
            description=description.strip(),
            images=list(images or []),
            video=video,
            status=TicketStatus.open,
        )
        session.add(ticket)

        log_order_event(
            session,
            order.id,
            OrderEventType.ticket_opened,
            f"Ticket {ticket.ticket_number} opened",
            created_by=created_by,
            meta={"ticket_number": ticket.ticket_number, "vendor_id": vendor_id, "type": ticket.type.value},
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(ticket)
    logger.info(f"Ticket {ticket.ticket_number} opened for order {order_number}, vendor {vendor_id}")
    return ticket


def get_ticket(session: Session, ticket_number: str) -> Ticket:
    ticket = session.exec(
        select(Ticket)
        .where(Ticket.ticket_number == ticket_number)
        .execution_options(populate_existing=True)
    ).first()
    if not ticket:
        raise TicketNotFound(ticket_number)
    return ticket


def _transition(session: Session, ticket: Ticket, new_status: TicketStatus, **values) -> Ticket:
    current = TicketStatus(ticket.status)
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(current.value, new_status.value, ticket_number=ticket.ticket_number)

    values["status"] = new_status
    values["updated_at"] = datetime.utcnow()

    try:
        result = session.execute(
            update(Ticket)
            .where(Ticket.id == ticket.id, Ticket.status == current)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidTransition(current.value, new_status.value, ticket_number=ticket.ticket_number)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(ticket)
    logger.info(f"Ticket {ticket.ticket_number}: {current.value} -> {new_status.value}")
    return ticket


def start_ticket(session: Session, ticket_number: str) -> Ticket:
    ticket = get_ticket(session, ticket_number)
    return _transition(session, ticket, TicketStatus.in_progress)


def resolve_ticket(session: Session, ticket_number: str, resolution: str, accept: bool) -> Ticket:
    """Close a ticket as resolved (``accept``) or rejected, recording why."""
    if not resolution or not resolution.strip():
        raise ValidationError("Resolution is required")

    ticket = get_ticket(session, ticket_number)
    new_status = TicketStatus.resolved if accept else TicketStatus.rejected
    return _transition(
        session,
        ticket,
        new_status,
        resolution=resolution.strip(),
        resolved_at=datetime.utcnow(),
    )


def list_tickets(
    session: Session,
    *,
    vendor_id: Optional[int] = None,
    customer_id: Optional[int] = None,
    status: Optional[TicketStatus] = None,
):
    query = select(Ticket)
    if vendor_id is not None:
        query = query.where(Ticket.vendor_id == vendor_id)
    if customer_id is not None:
        query = query.where(Ticket.order_id.in_(
            select(Order.id).where(Order.customer_id == customer_id)
        ))
    if status:
        query = query.where(Ticket.status == status)
    return query.order_by(Ticket.created_at.desc(), Ticket.id.desc())


def ticket_order_number(session: Session, ticket: Ticket) -> str:
    order = session.get(Order, ticket.order_id)
    return order.order_number

