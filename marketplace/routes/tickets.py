from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from marketplace.constants.ticket_status import TicketStatus
from marketplace.database import get_session
from marketplace.errors import Forbidden, ValidationError
from marketplace.models.order import Order
from marketplace.models.ticket import Ticket
from marketplace.models.user import User, UserRole
from marketplace.models.vendor import Vendor
from marketplace.schemas.ticket_schemas import TicketCreateRequest, TicketOut
from marketplace.services import order_service, ticket_service
from marketplace.utils.pagination import paginate
from marketplace.utils.token import get_current_user

router = APIRouter()


def ticket_out(session: Session, ticket: Ticket) -> TicketOut:
    return TicketOut(
        ticket_number=ticket.ticket_number,
        vendor_id=ticket.vendor_id,
        order_number=ticket_service.ticket_order_number(session, ticket),
        type=ticket.type,
        description=ticket.description,
        images=ticket.images or [],
        video=ticket.video,
        status=ticket.status,
        resolution=ticket.resolution,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
        resolved_at=ticket.resolved_at,
    )


def _vendor_of(session: Session, user: User) -> Optional[Vendor]:
    return session.exec(select(Vendor).where(Vendor.user_id == user.id)).first()


@router.post("/", response_model=TicketOut, status_code=201)
def create_ticket(
    payload: TicketCreateRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    vendor = _vendor_of(session, current_user)

    if vendor:
        if payload.vendor_id is not None and payload.vendor_id != vendor.id:
            raise Forbidden("Vendors can only raise tickets for their own items")
        vendor_id = vendor.id
    else:
        # customers raise tickets against a vendor on their own order
        order_service.get_order(session, payload.order_number, customer_id=current_user.id)
        if payload.vendor_id is None:
            raise ValidationError("vendor_id is required")
        vendor_id = payload.vendor_id

    ticket = ticket_service.create_ticket(
        session,
        vendor_id=vendor_id,
        order_number=payload.order_number,
        type=payload.type,
        description=payload.description,
        images=payload.images,
        video=payload.video,
        created_by=f"user:{current_user.id}",
    )
    return ticket_out(session, ticket)


@router.get("/")
def list_tickets(
    status: Optional[TicketStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    vendor = _vendor_of(session, current_user)
    if vendor:
        query = ticket_service.list_tickets(session, vendor_id=vendor.id, status=status)
    else:
        query = ticket_service.list_tickets(session, customer_id=current_user.id, status=status)

    return paginate(
        session=session,
        query=query,
        page=page,
        limit=limit,
        serializer=lambda ticket: ticket_out(session, ticket),
    )


@router.get("/{ticket_id}", response_model=TicketOut)
def get_ticket(
    ticket_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    ticket = ticket_service.get_ticket(session, ticket_id)

    if current_user.role != UserRole.admin:
        vendor = _vendor_of(session, current_user)
        order = session.get(Order, ticket.order_id)
        is_vendor = vendor is not None and vendor.id == ticket.vendor_id
        is_customer = order.customer_id == current_user.id
        if not (is_vendor or is_customer):
            raise Forbidden("Not authorized to view this ticket", ticket_id=ticket_id)

    return ticket_out(session, ticket)
