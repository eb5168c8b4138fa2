from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.models.user import User
from marketplace.schemas.order_schemas import (
    OrderEventOut,
    OrderOut,
    PaymentStatusResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    RazorpayOrderOut,
    VerifyPaymentRequest,
)
from marketplace.services import order_service
from marketplace.services.order_event_service import list_order_events
from marketplace.services.payment_gateway import get_payment_gateway
from marketplace.services.sms_service import get_notifier
from marketplace.utils.pagination import paginate
from marketplace.utils.token import get_current_user

router = APIRouter()


@router.post("/", response_model=PlaceOrderResponse, status_code=201)
def place_order(
    payload: PlaceOrderRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway=Depends(get_payment_gateway),
    notifier=Depends(get_notifier),
):
    order, gateway_order = order_service.place_order(
        session,
        user_id=current_user.id,
        shipping_address=payload.shipping_address.model_dump(),
        billing_address=payload.billing_address.model_dump() if payload.billing_address else None,
        payment_method=payload.payment_method,
        coupon_code=payload.coupon_code,
        notes=payload.notes,
        gateway=gateway,
        notifier=notifier,
        background_tasks=background_tasks,
    )

    razorpay_order = None
    if gateway_order:
        razorpay_order = RazorpayOrderOut(
            id=gateway_order["id"],
            amount=gateway_order["amount"],
            currency=gateway_order.get("currency", "INR"),
            key=gateway.key_id,
        )

    return PlaceOrderResponse(
        message="Order placed successfully",
        order=OrderOut.model_validate(order),
        razorpay_order=razorpay_order,
    )


@router.post("/verify-payment", response_model=PaymentStatusResponse)
def verify_payment(
    payload: VerifyPaymentRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway=Depends(get_payment_gateway),
):
    payment_status = order_service.verify_payment(
        session,
        payload.order_number,
        payload.model_dump(exclude={"order_number"}),
        gateway=gateway,
        customer_id=current_user.id,
    )
    return PaymentStatusResponse(
        message="Payment verified successfully",
        order_number=payload.order_number,
        payment_status=payment_status,
    )


@router.get("/my-orders")
def my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return paginate(
        session=session,
        query=order_service.list_customer_orders(session, current_user.id),
        page=page,
        limit=limit,
        serializer=OrderOut.model_validate,
    )


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return order_service.get_order(session, order_id, customer_id=current_user.id)


@router.put("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway=Depends(get_payment_gateway),
):
    return order_service.cancel_order(
        session,
        order_id,
        customer_id=current_user.id,
        actor=f"user:{current_user.id}",
        gateway=gateway,
    )


@router.get("/{order_id}/timeline", response_model=List[OrderEventOut])
def order_timeline(
    order_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = order_service.get_order(session, order_id, customer_id=current_user.id)
    return list_order_events(session, order.id)
