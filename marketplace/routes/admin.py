from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlmodel import Session

from marketplace.constants.order_status import ItemTransitionPolicy, OrderStatus
from marketplace.constants.ticket_status import TicketStatus
from marketplace.database import get_session
from marketplace.models.user import User
from marketplace.routes.tickets import ticket_out
from marketplace.schemas.auth_schemas import WalletCredit
from marketplace.schemas.coupon_schemas import CouponCreate, CouponOut
from marketplace.schemas.order_schemas import ItemStatusUpdateRequest, OrderOut
from marketplace.schemas.ticket_schemas import TicketOut, TicketResolveRequest
from marketplace.schemas.vendor_schemas import CommissionUpdate, VendorOut
from marketplace.services import (
    coupon_service,
    order_service,
    ticket_service,
    vendor_service,
    wallet_service,
)
from marketplace.services.payment_gateway import get_payment_gateway
from marketplace.services.sms_service import get_notifier
from marketplace.utils.pagination import paginate
from marketplace.utils.token import require_admin

router = APIRouter()


# -------- ORDERS --------

@router.get("/orders")
def list_orders(
    status: Optional[OrderStatus] = None,
    search: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    return paginate(
        session=session,
        query=order_service.list_all_orders(session, status, search, start_date, end_date),
        page=page,
        limit=limit,
        serializer=OrderOut.model_validate,
    )


@router.put("/orders/{order_id}/items/{item_id}/status", response_model=OrderOut)
def update_item_status(
    order_id: str,
    item_id: int,
    payload: ItemStatusUpdateRequest,
    background_tasks: BackgroundTasks,
    policy: Optional[ItemTransitionPolicy] = None,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    gateway=Depends(get_payment_gateway),
    notifier=Depends(get_notifier),
):
    return order_service.update_item_status(
        session,
        order_id,
        item_id,
        payload.status,
        tracking_id=payload.tracking_id,
        policy=policy,
        actor=f"admin:{admin.id}",
        gateway=gateway,
        notifier=notifier,
        background_tasks=background_tasks,
    )


@router.put("/orders/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: str,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    gateway=Depends(get_payment_gateway),
):
    return order_service.cancel_order(session, order_id, actor=f"admin:{admin.id}", gateway=gateway)


# -------- COUPONS --------

@router.post("/coupons", response_model=CouponOut, status_code=201)
def create_coupon(
    payload: CouponCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    return coupon_service.create_coupon(session, payload)


@router.get("/coupons", response_model=List[CouponOut])
def list_coupons(
    active_only: bool = False,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    return coupon_service.list_coupons(session, active_only=active_only)


# -------- TICKETS --------

@router.get("/tickets")
def list_tickets(
    status: Optional[TicketStatus] = None,
    vendor_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    return paginate(
        session=session,
        query=ticket_service.list_tickets(session, vendor_id=vendor_id, status=status),
        page=page,
        limit=limit,
        serializer=lambda ticket: ticket_out(session, ticket),
    )


@router.put("/tickets/{ticket_id}/start", response_model=TicketOut)
def start_ticket(
    ticket_id: str,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    ticket = ticket_service.start_ticket(session, ticket_id)
    return ticket_out(session, ticket)


@router.put("/tickets/{ticket_id}/resolve", response_model=TicketOut)
def resolve_ticket(
    ticket_id: str,
    payload: TicketResolveRequest,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    ticket = ticket_service.resolve_ticket(session, ticket_id, payload.resolution, payload.accept)
    return ticket_out(session, ticket)


# -------- VENDORS --------

@router.get("/vendors")
def list_vendors(
    approved: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    return paginate(
        session=session,
        query=vendor_service.list_vendors(session, approved),
        page=page,
        limit=limit,
        serializer=VendorOut.model_validate,
    )


@router.put("/vendors/{vendor_id}/approve", response_model=VendorOut)
def approve_vendor(
    vendor_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    return vendor_service.approve_vendor(session, vendor_id)


@router.put("/vendors/{vendor_id}/commission", response_model=VendorOut)
def update_commission(
    vendor_id: int,
    payload: CommissionUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    return vendor_service.set_commission(session, vendor_id, payload.commission)


@router.put("/vendors/{vendor_id}/toggle-status", response_model=VendorOut)
def toggle_vendor_status(
    vendor_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    return vendor_service.toggle_active(session, vendor_id)


# -------- WALLETS --------

@router.post("/users/{user_id}/wallet")
def credit_wallet(
    user_id: int,
    payload: WalletCredit,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    balance = wallet_service.top_up(session, user_id, payload.amount)
    return {"message": "Wallet credited", "user_id": user_id, "wallet": balance}
