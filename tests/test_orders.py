import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest
from sqlmodel import Session, select

from marketplace.constants.order_status import (
    ItemStatus,
    ItemTransitionPolicy,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from marketplace.errors import (
    CannotCancel,
    EmptyCart,
    Forbidden,
    InsufficientWalletBalance,
    InvalidCoupon,
    InvalidTransition,
    OutOfStock,
    PaymentVerificationFailed,
    ValidationError,
)
from marketplace.models.coupon import Coupon, DiscountType
from marketplace.models.order import Order
from marketplace.models.order_event import OrderEvent, OrderEventType
from marketplace.models.vendor import Vendor
from marketplace.services import cart_service, order_service, wallet_service
from marketplace.services.cart_service import CartOwner
from marketplace.services.sequence_service import next_order_number
from tests.helpers import ADDRESS, fill_cart, make_product, make_user, make_vendor, stock_of


def place(session, user, method=PaymentMethod.cod, **kwargs):
    order, _ = order_service.place_order(
        session,
        user_id=user.id,
        shipping_address=ADDRESS,
        payment_method=method,
        **kwargs,
    )
    return order


def advance(session, order, item_id, *statuses, **kwargs):
    for status in statuses:
        order = order_service.update_item_status(session, order.order_number, item_id, status, **kwargs)
    return order


# ---------- placing orders ----------

def test_worked_scenario_last_pairs(session):
    vendor = make_vendor(session)
    product = make_product(session, vendor, selling_price=1000, variants=(("9", "black", 2),))
    first, second = make_user(session), make_user(session)
    fill_cart(session, first, product, 2)
    fill_cart(session, second, product, 2)

    order = place(session, first)

    assert order.order_number == "ORD000001"
    assert order.subtotal == 2000
    assert order.shipping_charges == 0
    assert order.total == 2000
    assert order.status == OrderStatus.pending
    assert stock_of(session, product.id) == 0
    assert cart_service.get_cart(session, CartOwner(user_id=first.id)) is None

    with pytest.raises(OutOfStock):
        place(session, second)
    assert stock_of(session, product.id) == 0


def test_place_order_snapshots_items_and_commission(session, notifier):
    vendor_a = make_vendor(session, commission=10)
    vendor_b = make_vendor(session, commission=20)
    boot = make_product(session, vendor_a, name="Boot", selling_price=1000, mrp=1500, vendor_discount=10)
    slipper = make_product(session, vendor_b, name="Slipper", selling_price=250)
    user = make_user(session)
    fill_cart(session, user, boot, 1)
    fill_cart(session, user, slipper, 1)

    order = place(session, user, notifier=notifier)

    boot_item, slipper_item = order.items
    assert boot_item.name == "Boot"
    assert boot_item.image == "https://cdn.example.com/shoe.jpg"
    assert boot_item.mrp == 1500
    assert boot_item.final_price == 900
    assert boot_item.commission == 90
    assert boot_item.vendor_earning == 810
    assert slipper_item.commission == 50
    # Boot ships free, Slipper's vendor is under the threshold
    assert order.subtotal == 1150
    assert order.shipping_charges == 49
    assert order.total == 1199
    assert order.estimated_delivery > datetime.utcnow() + timedelta(days=6)
    assert notifier.templates() == ["order_confirmation"]
    assert notifier.sent[0][2]["order_id"] == order.order_number


def test_snapshot_survives_price_change(session):
    vendor = make_vendor(session)
    product = make_product(session, vendor, selling_price=1000)
    user = make_user(session)
    fill_cart(session, user, product, 1)
    order = place(session, user)

    product.selling_price = 5000
    session.add(product)
    session.commit()

    assert order_service.get_order(session, order.order_number).items[0].final_price == 1000


def test_empty_cart(session):
    user = make_user(session)
    with pytest.raises(EmptyCart):
        place(session, user)


def test_inactive_products_do_not_count(session):
    vendor = make_vendor(session)
    product = make_product(session, vendor)
    user = make_user(session)
    fill_cart(session, user, product, 1)

    product.is_active = False
    session.add(product)
    session.commit()

    with pytest.raises(EmptyCart):
        place(session, user)


def test_failed_checkout_leaves_no_partial_order(session):
    vendor = make_vendor(session)
    plenty = make_product(session, vendor, name="Plenty", variants=(("9", "black", 10),))
    scarce = make_product(session, vendor, name="Scarce", variants=(("9", "black", 2),))
    user = make_user(session)
    fill_cart(session, user, plenty, 3)
    fill_cart(session, user, scarce, 2)

    scarce_variant_owner = make_user(session)
    fill_cart(session, scarce_variant_owner, scarce, 1)
    place(session, scarce_variant_owner)

    with pytest.raises(OutOfStock) as exc:
        place(session, user)

    assert exc.value.context["product_id"] == scarce.id
    assert stock_of(session, plenty.id) == 10
    assert len(cart_service.list_lines(session, CartOwner(user_id=user.id))) == 2
    assert session.exec(select(Order).where(Order.customer_id == user.id)).first() is None


def test_concurrent_checkouts_only_one_wins(engine):
    with Session(engine) as setup:
        vendor = make_vendor(setup)
        product = make_product(setup, vendor, variants=(("9", "black", 2),))
        users = [make_user(setup) for _ in range(5)]
        for user in users:
            fill_cart(setup, user, product, 2)
        product_id = product.id
        user_ids = [user.id for user in users]

    def checkout(user_id):
        with Session(engine) as session:
            try:
                order_service.place_order(
                    session,
                    user_id=user_id,
                    shipping_address=ADDRESS,
                    payment_method=PaymentMethod.cod,
                )
                return "ok"
            except OutOfStock:
                return "out_of_stock"

    with ThreadPoolExecutor(max_workers=5) as pool:
        results = list(pool.map(checkout, user_ids))

    assert results.count("ok") == 1
    assert results.count("out_of_stock") == 4
    with Session(engine) as session:
        assert stock_of(session, product_id) == 0


def test_order_numbers_are_unique_under_concurrency(engine):
    def generate(_):
        with Session(engine) as session:
            number = next_order_number(session)
            session.commit()
            return number

    with ThreadPoolExecutor(max_workers=16) as pool:
        numbers = list(pool.map(generate, range(1000)))

    assert len(set(numbers)) == 1000
    assert all(re.fullmatch(r"ORD\d{6}", n) for n in numbers)
    assert max(numbers) == "ORD001000"


# ---------- coupons ----------

def make_coupon(session, **overrides):
    data = dict(
        code="WELCOME10",
        description="10% off",
        discount_type=DiscountType.percentage,
        discount_value=10,
        min_order_value=500,
        max_discount=150,
        valid_from=datetime.utcnow() - timedelta(days=1),
        valid_until=datetime.utcnow() + timedelta(days=1),
    )
    data.update(overrides)
    coupon = Coupon(**data)
    session.add(coupon)
    session.commit()
    session.refresh(coupon)
    return coupon


def test_percentage_coupon_is_capped(session):
    vendor = make_vendor(session)
    product = make_product(session, vendor, selling_price=2000)
    user = make_user(session)
    coupon = make_coupon(session)
    fill_cart(session, user, product, 1)

    order = place(session, user, coupon_code="welcome10")

    assert order.coupon_code == "WELCOME10"
    assert order.coupon_discount == 150
    assert order.total == 1850
    session.refresh(coupon)
    assert coupon.used_count == 1


def test_fixed_coupon_never_makes_total_negative(session):
    vendor = make_vendor(session)
    product = make_product(session, vendor, selling_price=100)
    user = make_user(session)
    make_coupon(session, code="FLAT500", discount_type=DiscountType.fixed, discount_value=500, min_order_value=0, max_discount=None)
    fill_cart(session, user, product, 1)

    order = place(session, user, coupon_code="FLAT500")

    assert order.coupon_discount == 100
    assert order.total == 49


@pytest.mark.parametrize(
    "overrides",
    [
        {"is_active": False},
        {"valid_until": datetime.utcnow() - timedelta(hours=1)},
        {"min_order_value": 5000},
        {"usage_limit": 1, "used_count": 1},
    ],
)
def test_invalid_coupon_rejects_checkout(session, overrides):
    vendor = make_vendor(session)
    product = make_product(session, vendor, selling_price=1000)
    user = make_user(session)
    make_coupon(session, **overrides)
    fill_cart(session, user, product, 1)

    with pytest.raises(InvalidCoupon):
        place(session, user, coupon_code="WELCOME10")

    assert stock_of(session, product.id) == 10


# ---------- item status ----------

@pytest.fixture
def placed(session):
    vendor = make_vendor(session)
    product = make_product(session, vendor, selling_price=1000, variants=(("9", "black", 5),))
    user = make_user(session)
    fill_cart(session, user, product, 2)
    order = place(session, user)
    return order, order.items[0].id, vendor, product


def test_sequential_walk_to_delivery(session, placed, notifier):
    order, item_id, vendor, _ = placed

    order = advance(
        session, order, item_id,
        ItemStatus.confirmed, ItemStatus.packaging, ItemStatus.ready_to_pickup,
        ItemStatus.picked_up, ItemStatus.in_transit, ItemStatus.delivered,
        notifier=notifier,
    )

    item = order.items[0]
    assert item.status == ItemStatus.delivered
    assert item.delivered_at is not None
    assert order.status == OrderStatus.delivered
    # cash on delivery is collected with the last pair
    assert order.payment_status == PaymentStatus.paid
    assert notifier.templates() == ["shipping_update", "shipping_update", "delivery_confirmation"]

    vendor = session.get(Vendor, vendor.id)
    session.refresh(vendor)
    assert vendor.total_orders == 1
    assert vendor.total_revenue == item.vendor_earning
    assert vendor.pending_payment == item.vendor_earning


def test_delivered_cannot_go_back(session, placed):
    order, item_id, _, _ = placed
    order = advance(session, order, item_id, ItemStatus.delivered, policy=ItemTransitionPolicy.skip_ahead)

    with pytest.raises(InvalidTransition):
        order_service.update_item_status(session, order.order_number, item_id, ItemStatus.confirmed)


def test_sequential_policy_forbids_skipping(session, placed):
    order, item_id, _, _ = placed
    advance(session, order, item_id, ItemStatus.confirmed)

    with pytest.raises(InvalidTransition):
        order_service.update_item_status(
            session, order.order_number, item_id, ItemStatus.in_transit,
            policy=ItemTransitionPolicy.sequential,
        )


def test_skip_ahead_policy_allows_later_steps(session, placed):
    order, item_id, _, _ = placed

    order = advance(
        session, order, item_id, ItemStatus.in_transit,
        policy=ItemTransitionPolicy.skip_ahead,
        tracking_id="AWB123",
    )

    assert order.items[0].status == ItemStatus.in_transit
    assert order.items[0].tracking_id == "AWB123"
    assert order.status == OrderStatus.shipped

    with pytest.raises(InvalidTransition):
        order_service.update_item_status(
            session, order.order_number, item_id, ItemStatus.packaging,
            policy=ItemTransitionPolicy.skip_ahead,
        )


def test_same_status_is_not_a_transition(session, placed):
    order, item_id, _, _ = placed
    with pytest.raises(InvalidTransition):
        order_service.update_item_status(session, order.order_number, item_id, ItemStatus.pending)


def test_vendor_can_only_move_own_items(session, placed):
    order, item_id, _, _ = placed
    other = make_vendor(session)

    with pytest.raises(Forbidden):
        order_service.update_item_status(
            session, order.order_number, item_id, ItemStatus.confirmed, vendor_id=other.id,
        )


def test_cancelling_item_before_pickup_restocks(session, placed):
    order, item_id, _, product = placed
    assert stock_of(session, product.id) == 3

    order = advance(session, order, item_id, ItemStatus.confirmed, ItemStatus.packaging, ItemStatus.cancelled)

    assert stock_of(session, product.id) == 5
    assert order.status == OrderStatus.cancelled


def test_lost_item_is_not_restocked(session, placed):
    order, item_id, _, product = placed
    advance(session, order, item_id, ItemStatus.picked_up, ItemStatus.lost, policy=ItemTransitionPolicy.skip_ahead)

    assert stock_of(session, product.id) == 3


def test_timeline_records_each_step(session, placed):
    order, item_id, _, _ = placed
    advance(session, order, item_id, ItemStatus.confirmed, ItemStatus.packaging, actor="vendor:1")

    events = session.exec(
        select(OrderEvent).where(OrderEvent.order_id == order.id).order_by(OrderEvent.created_at)
    ).all()
    assert [e.event_type for e in events] == ["order_placed", "item_status_changed", "item_status_changed"]
    assert events[-1].meta["to"] == "packaging"
    assert events[-1].created_by == "vendor:1"


# ---------- cancellation ----------

def test_cancel_releases_stock_exactly(session, placed):
    order, _, _, product = placed

    order = order_service.cancel_order(session, order.order_number)

    assert order.status == OrderStatus.cancelled
    assert all(item.status == ItemStatus.cancelled for item in order.items)
    assert stock_of(session, product.id) == 5


def test_cancel_fails_once_packaging(session, placed):
    order, item_id, _, product = placed
    advance(session, order, item_id, ItemStatus.confirmed, ItemStatus.packaging)

    with pytest.raises(CannotCancel):
        order_service.cancel_order(session, order.order_number)
    assert stock_of(session, product.id) == 3


def test_customer_cannot_cancel_someone_elses_order(session, placed):
    order, _, _, _ = placed
    stranger = make_user(session)

    with pytest.raises(Forbidden):
        order_service.cancel_order(session, order.order_number, customer_id=stranger.id)


# ---------- online payment ----------

def test_razorpay_order_and_valid_signature(session, gateway):
    vendor = make_vendor(session)
    product = make_product(session, vendor, selling_price=1000)
    user = make_user(session)
    fill_cart(session, user, product, 1)

    order, gateway_order = order_service.place_order(
        session,
        user_id=user.id,
        shipping_address=ADDRESS,
        payment_method=PaymentMethod.razorpay,
        gateway=gateway,
    )
    assert gateway_order["amount"] == 100000
    assert order.gateway_order_id == gateway_order["id"]
    assert order.payment_status == PaymentStatus.pending

    payload = {
        "razorpay_order_id": gateway_order["id"],
        "razorpay_payment_id": "pay_1",
        "razorpay_signature": "valid-signature",
    }
    assert order_service.verify_payment(session, order.order_number, payload, gateway=gateway) == PaymentStatus.paid

    order = order_service.get_order(session, order.order_number)
    assert order.payment_status == PaymentStatus.paid
    assert order.gateway_payment_id == "pay_1"
    assert order.items[0].status == ItemStatus.confirmed
    assert order.status == OrderStatus.confirmed

    # replayed callback
    assert order_service.verify_payment(session, order.order_number, payload, gateway=gateway) == PaymentStatus.paid


def test_bad_signature_leaves_payment_pending(session, gateway):
    vendor = make_vendor(session)
    product = make_product(session, vendor)
    user = make_user(session)
    fill_cart(session, user, product, 1)
    order, gateway_order = order_service.place_order(
        session,
        user_id=user.id,
        shipping_address=ADDRESS,
        payment_method=PaymentMethod.razorpay,
        gateway=gateway,
    )

    with pytest.raises(PaymentVerificationFailed):
        order_service.verify_payment(
            session,
            order.order_number,
            {"razorpay_payment_id": "pay_2", "razorpay_signature": "forged"},
            gateway=gateway,
        )

    order = order_service.get_order(session, order.order_number)
    assert order.payment_status == PaymentStatus.pending
    assert order.gateway_payment_id is None


# ---------- wallet ----------

def test_wallet_order_is_paid_at_checkout(session):
    vendor = make_vendor(session)
    product = make_product(session, vendor, selling_price=1000)
    user = make_user(session, wallet=3000)
    fill_cart(session, user, product, 1)

    order = place(session, user, PaymentMethod.wallet)

    assert order.total == 1000
    assert order.payment_status == PaymentStatus.paid
    assert order.status == OrderStatus.confirmed
    assert [item.status for item in order.items] == [ItemStatus.confirmed]
    assert wallet_service.get_balance(session, user.id) == 2000
    assert stock_of(session, product.id) == 9


def test_wallet_order_needs_enough_balance(session):
    vendor = make_vendor(session)
    product = make_product(session, vendor, selling_price=1000)
    user = make_user(session, wallet=500)
    fill_cart(session, user, product, 1)

    with pytest.raises(InsufficientWalletBalance) as exc:
        place(session, user, PaymentMethod.wallet)

    assert exc.value.context == {"required": 1000, "available": 500}
    assert wallet_service.get_balance(session, user.id) == 500
    assert stock_of(session, product.id) == 10
    assert len(cart_service.list_lines(session, CartOwner(user_id=user.id))) == 1
    assert session.exec(select(Order).where(Order.customer_id == user.id)).first() is None


# ---------- refunds ----------

def test_cancelling_wallet_order_refunds_the_wallet(session):
    vendor = make_vendor(session)
    product = make_product(session, vendor, selling_price=1000)
    user = make_user(session, wallet=1000)
    fill_cart(session, user, product, 1)
    order = place(session, user, PaymentMethod.wallet)

    order = order_service.cancel_order(session, order.order_number, customer_id=user.id)

    assert order.status == OrderStatus.cancelled
    assert order.payment_status == PaymentStatus.refunded
    assert order.refunded_amount == 1000
    assert wallet_service.get_balance(session, user.id) == 1000
    events = session.exec(select(OrderEvent).where(OrderEvent.order_id == order.id)).all()
    refund = next(e for e in events if e.event_type == OrderEventType.refund_issued)
    assert refund.meta["amount"] == 1000


def test_cancelling_paid_razorpay_order_refunds_the_payment(session, gateway):
    vendor = make_vendor(session)
    product = make_product(session, vendor, selling_price=1000)
    user = make_user(session)
    fill_cart(session, user, product, 1)
    order, gateway_order = order_service.place_order(
        session,
        user_id=user.id,
        shipping_address=ADDRESS,
        payment_method=PaymentMethod.razorpay,
        gateway=gateway,
    )
    order_service.verify_payment(
        session,
        order.order_number,
        {"razorpay_order_id": gateway_order["id"], "razorpay_payment_id": "pay_9", "razorpay_signature": "valid-signature"},
        gateway=gateway,
    )

    order = order_service.cancel_order(session, order.order_number, customer_id=user.id, gateway=gateway)

    assert order.status == OrderStatus.cancelled
    assert order.payment_status == PaymentStatus.refunded
    assert gateway.refunds == [{"id": "rfnd_1", "payment_id": "pay_9", "amount": 1000}]
    assert stock_of(session, product.id) == 10


def test_cancelling_unpaid_online_order_refunds_nothing(session, gateway):
    vendor = make_vendor(session)
    product = make_product(session, vendor)
    user = make_user(session)
    fill_cart(session, user, product, 1)
    order, _ = order_service.place_order(
        session,
        user_id=user.id,
        shipping_address=ADDRESS,
        payment_method=PaymentMethod.razorpay,
        gateway=gateway,
    )

    order = order_service.cancel_order(session, order.order_number, gateway=gateway)

    assert order.payment_status == PaymentStatus.pending
    assert order.refunded_amount == 0
    assert gateway.refunds == []


def test_cancelling_lines_of_paid_order_refunds_each_line(session):
    shoes, socks = make_vendor(session), make_vendor(session)
    shoe = make_product(session, shoes, selling_price=1000)
    sock = make_product(session, socks, name="Ankle Socks", selling_price=600)
    user = make_user(session, wallet=2000)
    fill_cart(session, user, shoe, 1)
    fill_cart(session, user, sock, 1)
    order = place(session, user, PaymentMethod.wallet)
    assert order.total == 1600
    shoe_item = next(item.id for item in order.items if item.vendor_id == shoes.id)
    sock_item = next(item.id for item in order.items if item.vendor_id == socks.id)

    order = order_service.update_item_status(
        session, order.order_number, sock_item, ItemStatus.cancelled, vendor_id=socks.id,
    )
    assert order.payment_status == PaymentStatus.partially_refunded
    assert order.refunded_amount == 600
    assert order.status == OrderStatus.confirmed
    assert wallet_service.get_balance(session, user.id) == 1000

    order = order_service.update_item_status(session, order.order_number, shoe_item, ItemStatus.cancelled)
    assert order.status == OrderStatus.cancelled
    assert order.payment_status == PaymentStatus.refunded
    assert order.refunded_amount == 1600
    assert wallet_service.get_balance(session, user.id) == 2000


def test_paid_line_cannot_be_cancelled_without_refund_channel(session, gateway):
    vendor = make_vendor(session)
    product = make_product(session, vendor, selling_price=1000)
    user = make_user(session)
    fill_cart(session, user, product, 1)
    order, gateway_order = order_service.place_order(
        session,
        user_id=user.id,
        shipping_address=ADDRESS,
        payment_method=PaymentMethod.razorpay,
        gateway=gateway,
    )
    order_service.verify_payment(
        session,
        order.order_number,
        {"razorpay_order_id": gateway_order["id"], "razorpay_payment_id": "pay_3", "razorpay_signature": "valid-signature"},
        gateway=gateway,
    )

    with pytest.raises(ValidationError):
        order_service.cancel_order(session, order.order_number)

    order = order_service.get_order(session, order.order_number)
    assert order.status == OrderStatus.confirmed
    assert order.payment_status == PaymentStatus.paid
    assert stock_of(session, product.id) == 9
