"""Domain exceptions for the marketplace core.

Services raise these; ``marketplace.main`` renders them as JSON responses with
the ``status_code`` carried by each family.
"""


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

    status_code = 400
    code = "marketplace_error"

    def __init__(self, message: str, **context):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.code, **self.context}


# ---------- NotFound ----------

class NotFound(MarketplaceError):
    status_code = 404
    code = "not_found"


class ProductNotFound(NotFound):
    code = "product_not_found"

    def __init__(self, product_id: int, size: str | None = None, color: str | None = None):
        msg = f"Product {product_id} not found"
        if size is not None or color is not None:
            msg = f"Product {product_id} ({size}/{color}) not found"
        super().__init__(msg, product_id=product_id, size=size, color=color)


class CartItemNotFound(NotFound):
    code = "cart_item_not_found"

    def __init__(self, product_id: int, size: str, color: str):
        super().__init__(
            "Item not in cart", product_id=product_id, size=size, color=color
        )


class OrderNotFound(NotFound):
    code = "order_not_found"

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found", order_id=order_id)


class OrderItemNotFound(NotFound):
    code = "order_item_not_found"

    def __init__(self, order_id: str, item_id: int):
        super().__init__(
            f"Order item {item_id} not found in order {order_id}",
            order_id=order_id,
            item_id=item_id,
        )


class TicketNotFound(NotFound):
    code = "ticket_not_found"

    def __init__(self, ticket_id: str):
        super().__init__(f"Ticket {ticket_id} not found", ticket_id=ticket_id)


class UserNotFound(NotFound):
    code = "user_not_found"

    def __init__(self, phone: str):
        super().__init__("User not found", phone=phone)


class VendorNotFound(NotFound):
    code = "vendor_not_found"

    def __init__(self, vendor_id: int | None = None):
        super().__init__("Vendor not found", vendor_id=vendor_id)


# ---------- Conflict ----------

class Conflict(MarketplaceError):
    status_code = 409
    code = "conflict"


class OutOfStock(Conflict):
    code = "out_of_stock"

    def __init__(self, product_id: int, size: str, color: str, available: int = 0, requested: int = 0):
        super().__init__(
            f"Insufficient stock for product {product_id} ({size}/{color}). "
            f"Available: {available}, Requested: {requested}",
            product_id=product_id,
            size=size,
            color=color,
            available=available,
            requested=requested,
        )


class StockReservationFailed(OutOfStock):
    """The conditional decrement lost a race with another checkout."""

    code = "stock_reservation_failed"


# ---------- InvalidState ----------

class InvalidState(MarketplaceError):
    status_code = 409
    code = "invalid_state"


class InvalidTransition(InvalidState):
    code = "invalid_transition"

    def __init__(self, current: str, requested: str, **context):
        super().__init__(
            f"Invalid status change from {current} → {requested}",
            current=current,
            requested=requested,
            **context,
        )


class CannotCancel(InvalidState):
    code = "cannot_cancel"

    def __init__(self, order_id: str, blocking_status: str):
        super().__init__(
            f"Order {order_id} cannot be cancelled at this stage",
            order_id=order_id,
            blocking_status=blocking_status,
        )


# ---------- ValidationError ----------

class ValidationError(MarketplaceError):
    status_code = 400
    code = "validation_error"


class EmptyCart(ValidationError):
    code = "empty_cart"

    def __init__(self):
        super().__init__("Your cart is empty")


class InvalidCoupon(ValidationError):
    code = "invalid_coupon"

    def __init__(self, coupon_code: str, reason: str):
        super().__init__(
            f"Coupon {coupon_code} is not valid: {reason}",
            coupon_code=coupon_code,
            reason=reason,
        )


class InsufficientWalletBalance(ValidationError):
    code = "insufficient_wallet_balance"

    def __init__(self, required: float, available: float):
        super().__init__(
            f"Wallet balance {available} is less than the order total {required}",
            required=required,
            available=available,
        )


class InvalidOTP(ValidationError):
    code = "invalid_otp"


class PaymentVerificationFailed(ValidationError):
    code = "payment_verification_failed"

    def __init__(self, order_id: str, reason: str):
        super().__init__(
            f"Payment verification failed for order {order_id}: {reason}",
            order_id=order_id,
        )


# ---------- Forbidden ----------

class Forbidden(MarketplaceError):
    status_code = 403
    code = "forbidden"


# ---------- ExternalServiceFailure ----------

class ExternalServiceFailure(MarketplaceError):
    status_code = 502
    code = "external_service_failure"

    def __init__(self, service: str, reason: str):
        super().__init__(f"{service} unavailable: {reason}", service=service)
