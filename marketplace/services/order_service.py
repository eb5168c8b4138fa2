# marketplace/services/order_service.py
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlmodel import Session, select

from marketplace.config import settings
from marketplace.constants.order_status import (
    CANCELLABLE_ITEM_STATUSES,
    SHIPPING_STATUSES,
    ItemStatus,
    ItemTransitionPolicy,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    allowed_transitions,
    derive_order_status,
)
from marketplace.errors import (
    CannotCancel,
    EmptyCart,
    Forbidden,
    InsufficientWalletBalance,
    InvalidState,
    InvalidTransition,
    OrderItemNotFound,
    OrderNotFound,
    OutOfStock,
    PaymentVerificationFailed,
    StockReservationFailed,
    ValidationError,
    VendorNotFound,
)
from marketplace.models.order import Order
from marketplace.models.order_event import OrderEventType
from marketplace.models.order_item import OrderItem
from marketplace.models.user import User
from marketplace.models.vendor import Vendor
from marketplace.notifications import NotificationEvent, dispatch_order_event
from marketplace.services import cart_service, catalog_service, coupon_service, wallet_service
from marketplace.services.cart_service import CartOwner
from marketplace.services.order_event_service import log_order_event
from marketplace.services.sequence_service import next_order_number
from marketplace.utils.pricing import compute_shipping

logger = logging.getLogger(__name__)

# items cancelled before pickup never left the warehouse
RESTOCKABLE_ITEM_STATUSES = {
    ItemStatus.pending,
    ItemStatus.confirmed,
    ItemStatus.packaging,
    ItemStatus.ready_to_pickup,
}


def get_order(session: Session, order_number: str, customer_id: Optional[int] = None) -> Order:
    order = session.exec(
        select(Order)
        .where(Order.order_number == order_number)
        .execution_options(populate_existing=True)
    ).first()
    if not order:
        raise OrderNotFound(order_number)

    if customer_id is not None and order.customer_id != customer_id:
        raise Forbidden("Not authorized to access this order", order_number=order_number)

    return order


def _customer_phone(session: Session, order: Order) -> Optional[str]:
    phone = (order.shipping_address or {}).get("phone")
    if phone:
        return phone
    customer = session.get(User, order.customer_id)
    return customer.phone if customer else None


def _refund(session: Session, order: Order, amount: float, *, gateway, actor: str, reason: str) -> float:
    """
    Send money for cancelled items back to where it came from: the wallet,
    or the Razorpay payment. Joins the caller's transaction and returns the
    amount refunded, capped at what is still unrefunded. Unpaid orders and
    cash on delivery have nothing to return.
    """
    if PaymentMethod(order.payment_method) == PaymentMethod.cod:
        return 0
    if order.payment_status not in (PaymentStatus.paid, PaymentStatus.partially_refunded):
        return 0

    amount = round(min(amount, order.total - order.refunded_amount), 2)
    if amount <= 0:
        return 0

    session.flush()
    result = session.execute(
        update(Order)
        .where(Order.id == order.id, Order.refunded_amount + amount <= Order.total + 0.01)
        .values(refunded_amount=Order.refunded_amount + amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidState("Refund exceeds the amount paid", order_number=order.order_number)
    session.refresh(order)

    meta = {"amount": amount, "reason": reason}
    if PaymentMethod(order.payment_method) == PaymentMethod.wallet:
        wallet_service.credit(session, order.customer_id, amount)
    else:
        if gateway is None:
            raise ValidationError("Refunds are not available", order_number=order.order_number)
        refund = gateway.refund(order.gateway_payment_id, amount, order.order_number)
        meta["refund_id"] = refund.get("id")

    order.payment_status = (
        PaymentStatus.refunded
        if order.refunded_amount >= order.total
        else PaymentStatus.partially_refunded
    )
    session.add(order)

    log_order_event(
        session,
        order.id,
        OrderEventType.refund_issued,
        f"Refunded {amount} to {PaymentMethod(order.payment_method).value}",
        created_by=actor,
        meta=meta,
    )
    logger.info(f"Order {order.order_number}: refund of {amount} ({reason})")
    return amount


def place_order(
    session: Session,
    *,
    user_id: int,
    shipping_address: dict,
    payment_method: PaymentMethod,
    coupon_code: Optional[str] = None,
    billing_address: Optional[dict] = None,
    notes: Optional[str] = None,
    gateway=None,
    notifier=None,
    background_tasks=None,
) -> Tuple[Order, Optional[dict]]:
    """
    Turn the user's cart into one order with a line item per cart line.

    Stock is reserved with conditional decrements inside the same
    transaction as the order insert; any failure rolls the whole thing
    back. Wallet orders are debited in that transaction too and start out
    paid and confirmed. Returns the order and, for Razorpay, the gateway order.
    """
    payment_method = PaymentMethod(payment_method)
    owner = CartOwner(user_id=user_id)
    gateway_order = None

    try:
        view = cart_service.compute_view(session, owner)
        lines = [line for line in view.items if line.available]
        if not lines:
            raise EmptyCart()

        # prices and stock as of this instant, not as of browsing
        for line in lines:
            if line.available_stock < line.quantity:
                raise OutOfStock(
                    line.product_id, line.size, line.color,
                    available=line.available_stock,
                    requested=line.quantity,
                )

        subtotal = round(sum(line.line_total for line in lines), 2)
        shipping_charges, _ = compute_shipping((line.vendor_id, line.line_total) for line in lines)

        coupon_discount = 0
        if coupon_code:
            coupon_code = coupon_service.normalize_code(coupon_code)
            coupon, coupon_discount = coupon_service.validate_coupon(session, coupon_code, subtotal)
            coupon_service.consume_coupon(session, coupon)

        vendor_ids = {line.vendor_id for line in lines}
        vendors = {
            vendor.id: vendor
            for vendor in session.exec(select(Vendor).where(Vendor.id.in_(vendor_ids))).all()
        }

        items = []
        for line in lines:
            vendor = vendors.get(line.vendor_id)
            if not vendor:
                raise VendorNotFound(line.vendor_id)

            if not catalog_service.decrement_stock(session, line.product_id, line.size, line.color, line.quantity):
                raise StockReservationFailed(
                    line.product_id, line.size, line.color,
                    available=0,
                    requested=line.quantity,
                )

            variant = catalog_service.get_variant(session, line.product_id, line.size, line.color)
            commission = round(line.line_total * vendor.commission / 100, 2)
            items.append(
                OrderItem(
                    product_id=line.product_id,
                    vendor_id=vendor.id,
                    name=line.name,
                    image=line.image,
                    size=line.size,
                    color=line.color,
                    quantity=line.quantity,
                    mrp=line.mrp,
                    selling_price=line.selling_price,
                    vendor_discount=variant.vendor_discount,
                    website_discount=variant.website_discount,
                    final_price=line.final_price,
                    commission=commission,
                    vendor_earning=round(line.line_total - commission, 2),
                )
            )

        total = round(subtotal + shipping_charges - coupon_discount, 2)

        paid_from_wallet = payment_method == PaymentMethod.wallet
        if paid_from_wallet and not wallet_service.debit(session, user_id, total):
            raise InsufficientWalletBalance(total, wallet_service.get_balance(session, user_id))

        order = Order(
            order_number=next_order_number(session),
            customer_id=user_id,
            shipping_address=shipping_address,
            billing_address=billing_address or shipping_address,
            subtotal=subtotal,
            shipping_charges=shipping_charges,
            coupon_code=coupon_code or None,
            coupon_discount=coupon_discount,
            total=total,
            payment_method=payment_method,
            payment_status=PaymentStatus.paid if paid_from_wallet else PaymentStatus.pending,
            status=OrderStatus.confirmed if paid_from_wallet else OrderStatus.pending,
            estimated_delivery=datetime.utcnow() + timedelta(days=settings.ESTIMATED_DELIVERY_DAYS),
            notes=notes,
        )
        session.add(order)
        session.flush()

        for item in items:
            item.order_id = order.id
            if paid_from_wallet:
                item.status = ItemStatus.confirmed
            session.add(item)

        if payment_method == PaymentMethod.razorpay:
            if gateway is None:
                raise ValidationError("Online payment is not available")
            gateway_order = gateway.create_order(total, order.order_number)
            order.gateway_order_id = gateway_order["id"]

        log_order_event(
            session,
            order.id,
            OrderEventType.order_placed,
            f"Order {order.order_number} placed",
            created_by=f"user:{user_id}",
            meta={
                "total": total,
                "payment_method": payment_method.value,
                "payment_status": PaymentStatus(order.payment_status).value,
                "vendors": sorted(vendor_ids),
            },
        )

        cart_service.clear(session, owner, commit=False)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order.order_number} placed by user {user_id}: {len(items)} items, total {total}")

    dispatch_order_event(
        event=NotificationEvent.ORDER_PLACED,
        phone=_customer_phone(session, order),
        variables={"order_id": order.order_number, "amount": str(order.total)},
        notifier=notifier,
        background_tasks=background_tasks,
    )

    return order, gateway_order


def verify_payment(
    session: Session,
    order_number: str,
    gateway_payload: dict,
    *,
    gateway,
    customer_id: Optional[int] = None,
) -> PaymentStatus:
    """
    Confirm an online payment from the gateway callback.

    A bad signature leaves the order pending so the customer can retry;
    it is never marked paid without a valid signature.
    """
    order = get_order(session, order_number, customer_id=customer_id)

    # idempotency guard
    if order.payment_status == PaymentStatus.paid:
        return PaymentStatus.paid

    if order.payment_method != PaymentMethod.razorpay:
        raise ValidationError("Order is not paid online", order_number=order_number)

    if not order.gateway_order_id:
        raise PaymentVerificationFailed(order_number, "gateway order not initialized")

    claimed_gateway_order = gateway_payload.get("razorpay_order_id")
    if claimed_gateway_order and claimed_gateway_order != order.gateway_order_id:
        raise PaymentVerificationFailed(order_number, "gateway order mismatch")

    payment_id = gateway_payload.get("razorpay_payment_id")
    signature = gateway_payload.get("razorpay_signature")
    if not payment_id or not signature:
        raise PaymentVerificationFailed(order_number, "payment id and signature are required")

    if not gateway.verify_signature(order.gateway_order_id, payment_id, signature):
        log_order_event(
            session,
            order.id,
            OrderEventType.payment_failed,
            "Payment signature rejected",
            meta={"payment_id": payment_id},
        )
        session.commit()
        logger.warning(f"Payment signature rejected for order {order_number}")
        raise PaymentVerificationFailed(order_number, "invalid payment signature")

    try:
        order.payment_status = PaymentStatus.paid
        order.gateway_payment_id = payment_id

        # a paid order is confirmed for every vendor
        now = datetime.utcnow()
        for item in order.items:
            if item.status == ItemStatus.pending:
                item.status = ItemStatus.confirmed
                item.updated_at = now
                session.add(item)

        order.status = derive_order_status(item.status for item in order.items)
        order.updated_at = now
        session.add(order)

        log_order_event(
            session,
            order.id,
            OrderEventType.payment_verified,
            "Payment received",
            meta={"payment_id": payment_id, "amount": order.total},
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Payment {payment_id} verified for order {order_number}")
    return PaymentStatus.paid


def update_item_status(
    session: Session,
    order_number: str,
    item_id: int,
    new_status: ItemStatus,
    *,
    tracking_id: Optional[str] = None,
    vendor_id: Optional[int] = None,
    policy: Optional[ItemTransitionPolicy] = None,
    actor: str = "system",
    gateway=None,
    notifier=None,
    background_tasks=None,
) -> Order:
    """
    Move one line item forward through fulfilment.

    ``policy`` decides whether stages may be skipped; it defaults to the
    ``ITEM_TRANSITION_POLICY`` setting. When ``vendor_id`` is given the item
    must belong to that vendor. Cancelling a line of a paid order refunds
    its line total, or everything still unrefunded once no line is left.
    """
    try:
        new_status = ItemStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown item status {new_status}")
    policy = ItemTransitionPolicy(policy or settings.ITEM_TRANSITION_POLICY)

    order = get_order(session, order_number)
    item = next((i for i in order.items if i.id == item_id), None)
    if not item:
        raise OrderItemNotFound(order_number, item_id)

    if vendor_id is not None and item.vendor_id != vendor_id:
        raise Forbidden("Not authorized to update this item", item_id=item_id)

    current = ItemStatus(item.status)
    if new_status not in allowed_transitions(current, policy):
        raise InvalidTransition(current.value, new_status.value, item_id=item_id)

    now = datetime.utcnow()
    values = {"status": new_status, "updated_at": now}
    if tracking_id:
        values["tracking_id"] = tracking_id
    if new_status == ItemStatus.delivered:
        values["delivered_at"] = now

    try:
        # compare-and-set on the status the decision was made against
        result = session.execute(
            update(OrderItem)
            .where(OrderItem.id == item.id, OrderItem.status == current)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidTransition(current.value, new_status.value, item_id=item_id)
        session.refresh(item)

        if new_status == ItemStatus.cancelled and current in RESTOCKABLE_ITEM_STATUSES:
            catalog_service.release_stock(session, item.product_id, item.size, item.color, item.quantity)

        if new_status == ItemStatus.delivered:
            session.execute(
                update(Vendor)
                .where(Vendor.id == item.vendor_id)
                .values(
                    total_orders=Vendor.total_orders + 1,
                    total_revenue=Vendor.total_revenue + item.vendor_earning,
                    pending_payment=Vendor.pending_payment + item.vendor_earning,
                )
                .execution_options(synchronize_session=False)
            )

        statuses = [ItemStatus(i.status) for i in order.items]
        order.status = derive_order_status(statuses)

        # cash is collected on delivery
        if (
            order.payment_method == PaymentMethod.cod
            and order.status == OrderStatus.delivered
            and all(s in (ItemStatus.delivered, ItemStatus.cancelled) for s in statuses)
        ):
            order.payment_status = PaymentStatus.paid

        order.updated_at = now
        session.add(order)

        log_order_event(
            session,
            order.id,
            OrderEventType.item_status_changed,
            f"{item.name} ({item.size}/{item.color}): {current.value} → {new_status.value}",
            created_by=actor,
            meta={
                "item_id": item.id,
                "vendor_id": item.vendor_id,
                "from": current.value,
                "to": new_status.value,
                "tracking_id": item.tracking_id,
            },
        )

        if new_status == ItemStatus.cancelled:
            owed = order.total if order.status == OrderStatus.cancelled else item.final_price * item.quantity
            _refund(
                session, order, owed,
                gateway=gateway, actor=actor, reason=f"item {item.id} cancelled",
            )
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order_number} item {item_id}: {current.value} -> {new_status.value} by {actor}")

    if new_status in SHIPPING_STATUSES:
        dispatch_order_event(
            event=NotificationEvent.SHIPPED,
            phone=_customer_phone(session, order),
            variables={
                "order_id": order.order_number,
                "status": new_status.value,
                "tracking_url": item.tracking_id or "",
            },
            notifier=notifier,
            background_tasks=background_tasks,
        )
    elif new_status == ItemStatus.delivered:
        dispatch_order_event(
            event=NotificationEvent.DELIVERED,
            phone=_customer_phone(session, order),
            variables={"order_id": order.order_number},
            notifier=notifier,
            background_tasks=background_tasks,
        )

    return order


def cancel_order(
    session: Session,
    order_number: str,
    *,
    customer_id: Optional[int] = None,
    actor: str = "system",
    gateway=None,
) -> Order:
    """
    Cancel every item, put the stock back and refund whatever was paid.

    Only allowed while all items are still pending or confirmed; once a
    vendor starts packaging, items must be cancelled one by one.
    """
    order = get_order(session, order_number, customer_id=customer_id)

    blocking = next(
        (item for item in order.items if ItemStatus(item.status) not in CANCELLABLE_ITEM_STATUSES),
        None,
    )
    if blocking:
        raise CannotCancel(order_number, ItemStatus(blocking.status).value)

    now = datetime.utcnow()
    try:
        for item in order.items:
            result = session.execute(
                update(OrderItem)
                .where(OrderItem.id == item.id, OrderItem.status.in_(CANCELLABLE_ITEM_STATUSES))
                .values(status=ItemStatus.cancelled, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # a vendor moved the item on while we were cancelling
                raise CannotCancel(order_number, "changed")

            catalog_service.release_stock(session, item.product_id, item.size, item.color, item.quantity)
            session.refresh(item)

        order.status = OrderStatus.cancelled
        order.updated_at = now
        session.add(order)

        log_order_event(
            session,
            order.id,
            OrderEventType.order_cancelled,
            f"Order {order_number} cancelled",
            created_by=actor,
            meta={"items": [item.id for item in order.items]},
        )
        _refund(session, order, order.total, gateway=gateway, actor=actor, reason="order cancelled")
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order_number} cancelled by {actor}")
    return order


def list_customer_orders(session: Session, customer_id: int):
    return (
        select(Order)
        .where(Order.customer_id == customer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )


def list_vendor_orders(session: Session, vendor_id: int, status: Optional[ItemStatus] = None):
    query = (
        select(Order)
        .where(Order.id.in_(
            select(OrderItem.order_id).where(OrderItem.vendor_id == vendor_id)
        ))
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    if status:
        query = query.where(Order.id.in_(
            select(OrderItem.order_id).where(
                OrderItem.vendor_id == vendor_id,
                OrderItem.status == status,
            )
        ))
    return query


def vendor_items(order: Order, vendor_id: int) -> List[OrderItem]:
    """Only the lines a vendor is responsible for."""
    return [item for item in order.items if item.vendor_id == vendor_id]


def list_all_orders(
    session: Session,
    status: Optional[OrderStatus] = None,
    search: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
):
    query = select(Order)
    if status:
        query = query.where(Order.status == status)
    if search:
        query = query.where(Order.order_number.ilike(f"%{search}%"))
    if start_date:
        query = query.where(Order.created_at >= start_date)
    if end_date:
        query = query.where(Order.created_at <= end_date)
    return query.order_by(Order.created_at.desc(), Order.id.desc())
