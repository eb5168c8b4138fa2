from enum import Enum


class ItemStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    packaging = "packaging"
    ready_to_pickup = "ready_to_pickup"
    picked_up = "picked_up"
    in_transit = "in_transit"
    delivered = "delivered"
    cancelled = "cancelled"
    rto = "rto"
    lost = "lost"


class OrderStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"
    rto = "rto"
    lost = "lost"


class PaymentMethod(str, Enum):
    cod = "cod"
    razorpay = "razorpay"
    wallet = "wallet"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"
    partially_refunded = "partially_refunded"
    refunded = "refunded"


class ItemTransitionPolicy(str, Enum):
    sequential = "sequential"
    skip_ahead = "skip_ahead"


# forward fulfilment path, in order
ITEM_SEQUENCE = [
    ItemStatus.pending,
    ItemStatus.confirmed,
    ItemStatus.packaging,
    ItemStatus.ready_to_pickup,
    ItemStatus.picked_up,
    ItemStatus.in_transit,
    ItemStatus.delivered,
]

EXCEPTION_STATUSES = {ItemStatus.cancelled, ItemStatus.rto, ItemStatus.lost}

TERMINAL_ITEM_STATUSES = {ItemStatus.delivered} | EXCEPTION_STATUSES

CANCELLABLE_ITEM_STATUSES = {ItemStatus.pending, ItemStatus.confirmed}

SHIPPING_STATUSES = {ItemStatus.picked_up, ItemStatus.in_transit}

ALLOWED_TRANSITIONS = {
    ItemStatus.pending: [ItemStatus.confirmed, *EXCEPTION_STATUSES],
    ItemStatus.confirmed: [ItemStatus.packaging, *EXCEPTION_STATUSES],
    ItemStatus.packaging: [ItemStatus.ready_to_pickup, *EXCEPTION_STATUSES],
    ItemStatus.ready_to_pickup: [ItemStatus.picked_up, *EXCEPTION_STATUSES],
    ItemStatus.picked_up: [ItemStatus.in_transit, *EXCEPTION_STATUSES],
    ItemStatus.in_transit: [ItemStatus.delivered, *EXCEPTION_STATUSES],
    ItemStatus.delivered: [],
    ItemStatus.cancelled: [],
    ItemStatus.rto: [],
    ItemStatus.lost: [],
}


def allowed_transitions(current: ItemStatus, policy: ItemTransitionPolicy) -> set:
    """Statuses an item in ``current`` may move to under ``policy``."""
    if current in TERMINAL_ITEM_STATUSES:
        return set()

    if policy == ItemTransitionPolicy.skip_ahead:
        position = ITEM_SEQUENCE.index(current)
        return set(ITEM_SEQUENCE[position + 1:]) | EXCEPTION_STATUSES

    return set(ALLOWED_TRANSITIONS[current])


def derive_order_status(item_statuses) -> OrderStatus:
    """Roll the per-vendor item states up into the order's overall status."""
    statuses = [ItemStatus(s) for s in item_statuses]

    active = [s for s in statuses if s != ItemStatus.cancelled]
    if not active:
        return OrderStatus.cancelled

    if all(s in TERMINAL_ITEM_STATUSES for s in active):
        if ItemStatus.delivered in active:
            return OrderStatus.delivered
        if ItemStatus.rto in active:
            return OrderStatus.rto
        return OrderStatus.lost

    if any(s in SHIPPING_STATUSES or s == ItemStatus.delivered for s in active):
        return OrderStatus.shipped
    if any(s in (ItemStatus.packaging, ItemStatus.ready_to_pickup) for s in active):
        return OrderStatus.processing
    if ItemStatus.confirmed in active:
        return OrderStatus.confirmed
    return OrderStatus.pending
