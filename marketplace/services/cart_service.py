# marketplace/services/cart_service.py
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from marketplace.errors import (
    CartItemNotFound,
    OutOfStock,
    ProductNotFound,
    ValidationError,
)
from marketplace.models.cart import Cart, CartItem
from marketplace.schemas.cart_schemas import CartLineView, CartView
from marketplace.services import catalog_service
from marketplace.utils.pricing import compute_shipping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartOwner:
    """A logged-in user or a guest session. The user id wins when both are known."""

    user_id: Optional[int] = None
    session_id: Optional[str] = None

    def __post_init__(self):
        if self.user_id is None and not self.session_id:
            raise ValidationError("Session ID required")

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    def __str__(self):
        if self.is_guest:
            return f"session:{self.session_id}"
        return f"user:{self.user_id}"


def _owner_filter(owner: CartOwner):
    if owner.is_guest:
        return Cart.session_id == owner.session_id
    return Cart.user_id == owner.user_id


def get_cart(session: Session, owner: CartOwner) -> Optional[Cart]:
    return session.exec(select(Cart).where(_owner_filter(owner))).first()


def _get_or_create_cart(session: Session, owner: CartOwner) -> Cart:
    cart = get_cart(session, owner)
    if cart:
        return cart

    try:
        with session.begin_nested():
            cart = Cart(
                user_id=owner.user_id,
                session_id=None if owner.user_id is not None else owner.session_id,
            )
            session.add(cart)
    except IntegrityError:
        # another request created it first
        cart = get_cart(session, owner)
    return cart


def _line_filter(cart_id: int, product_id: int, size: str, color: str):
    return (
        CartItem.cart_id == cart_id,
        CartItem.product_id == product_id,
        CartItem.size == size,
        CartItem.color == color,
    )


def _find_line(session: Session, cart_id: int, product_id: int, size: str, color: str) -> Optional[CartItem]:
    return session.exec(
        select(CartItem)
        .where(*_line_filter(cart_id, product_id, size, color))
        .execution_options(populate_existing=True)
    ).first()


def _increment_line(session: Session, cart_id: int, product_id: int, size: str, color: str, quantity: int, stock: int) -> bool:
    """Upsert-increment half: bump an existing line if the sum still fits in stock."""
    result = session.execute(
        update(CartItem)
        .where(
            *_line_filter(cart_id, product_id, size, color),
            CartItem.quantity + quantity <= stock,
        )
        .values(quantity=CartItem.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _touch(cart: Cart):
    cart.updated_at = datetime.utcnow()


def add_item(session: Session, owner: CartOwner, product_id: int, size: str, color: str, quantity: int = 1) -> CartItem:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1", quantity=quantity)

    variant = catalog_service.get_variant(session, product_id, size, color)
    if not variant or not variant.active:
        raise ProductNotFound(product_id, size, color)

    if variant.stock < quantity:
        raise OutOfStock(product_id, size, color, available=variant.stock, requested=quantity)

    try:
        cart = _get_or_create_cart(session, owner)

        if not _increment_line(session, cart.id, product_id, size, color, quantity, variant.stock):
            existing = _find_line(session, cart.id, product_id, size, color)
            if existing:
                raise OutOfStock(
                    product_id, size, color,
                    available=variant.stock,
                    requested=existing.quantity + quantity,
                )

            try:
                with session.begin_nested():
                    session.add(
                        CartItem(
                            cart_id=cart.id,
                            product_id=product_id,
                            vendor_id=variant.vendor_id,
                            size=size,
                            color=color,
                            quantity=quantity,
                        )
                    )
            except IntegrityError:
                # a concurrent add inserted the line between our update and insert
                if not _increment_line(session, cart.id, product_id, size, color, quantity, variant.stock):
                    raise OutOfStock(product_id, size, color, available=variant.stock, requested=quantity)

        _touch(cart)
        session.add(cart)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Cart {owner}: added {quantity} x product {product_id} ({size}/{color})")
    return _find_line(session, cart.id, product_id, size, color)


def update_item(session: Session, owner: CartOwner, product_id: int, size: str, color: str, quantity: int) -> Optional[CartItem]:
    """Set a line's quantity; zero or less removes it."""
    cart = get_cart(session, owner)
    line = _find_line(session, cart.id, product_id, size, color) if cart else None
    if not line:
        raise CartItemNotFound(product_id, size, color)

    if quantity <= 0:
        session.delete(line)
        _touch(cart)
        session.add(cart)
        session.commit()
        return None

    variant = catalog_service.get_variant(session, product_id, size, color)
    if not variant or not variant.active:
        raise ProductNotFound(product_id, size, color)
    if variant.stock < quantity:
        raise OutOfStock(product_id, size, color, available=variant.stock, requested=quantity)

    line.quantity = quantity
    _touch(cart)
    session.add(line)
    session.add(cart)
    session.commit()
    session.refresh(line)
    return line


def remove_item(session: Session, owner: CartOwner, product_id: int, size: str, color: str) -> None:
    cart = get_cart(session, owner)
    if not cart:
        return

    session.execute(
        delete(CartItem)
        .where(*_line_filter(cart.id, product_id, size, color))
        .execution_options(synchronize_session=False)
    )
    _touch(cart)
    session.add(cart)
    session.commit()


def clear(session: Session, owner: CartOwner, commit: bool = True) -> None:
    """Drop the owner's cart entirely. ``commit=False`` lets checkout fold it into its transaction."""
    cart = get_cart(session, owner)
    if cart:
        _delete_cart(session, cart)

    if commit:
        session.commit()


def _delete_cart(session: Session, cart: Cart) -> None:
    session.execute(
        delete(CartItem)
        .where(CartItem.cart_id == cart.id)
        .execution_options(synchronize_session=False)
    )
    session.delete(cart)
    session.flush()


def merge(session: Session, guest_session_id: str, user_id: int) -> int:
    """
    Fold a guest cart into the user's cart after login.

    Matching lines have their quantities summed and clamped to the stock
    currently available; other lines are copied. The guest cart is deleted.
    Returns the number of guest lines merged; a missing or empty guest cart
    is a no-op.
    """
    guest_cart = get_cart(session, CartOwner(session_id=guest_session_id))
    if not guest_cart:
        return 0

    try:
        guest_items = session.exec(
            select(CartItem).where(CartItem.cart_id == guest_cart.id).order_by(CartItem.id)
        ).all()

        if not guest_items:
            _delete_cart(session, guest_cart)
            session.commit()
            return 0

        user_cart = _get_or_create_cart(session, CartOwner(user_id=user_id))

        for guest_item in guest_items:
            existing = session.exec(
                select(CartItem)
                .where(*_line_filter(user_cart.id, guest_item.product_id, guest_item.size, guest_item.color))
                .with_for_update()
            ).first()

            if existing:
                merged_quantity = existing.quantity + guest_item.quantity
                variant = catalog_service.get_variant(
                    session, guest_item.product_id, guest_item.size, guest_item.color
                )
                if variant:
                    merged_quantity = max(1, min(merged_quantity, variant.stock))
                existing.quantity = merged_quantity
                session.add(existing)
            else:
                session.add(
                    CartItem(
                        cart_id=user_cart.id,
                        product_id=guest_item.product_id,
                        vendor_id=guest_item.vendor_id,
                        size=guest_item.size,
                        color=guest_item.color,
                        quantity=guest_item.quantity,
                    )
                )

        session.flush()
        _delete_cart(session, guest_cart)
        _touch(user_cart)
        session.add(user_cart)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Merged {len(guest_items)} guest cart lines into user {user_id}")
    return len(guest_items)


def list_lines(session: Session, owner: CartOwner) -> List[CartItem]:
    cart = get_cart(session, owner)
    if not cart:
        return []
    return session.exec(
        select(CartItem).where(CartItem.cart_id == cart.id).order_by(CartItem.id)
    ).all()


def compute_view(session: Session, owner: CartOwner) -> CartView:
    """
    Cart with prices, stock and totals recomputed from the live catalog.

    Lines that are unavailable or short on stock stay visible but are left
    out of the subtotal and shipping.
    """
    lines = []
    for item in list_lines(session, owner):
        variant = catalog_service.get_variant(session, item.product_id, item.size, item.color)

        if not variant:
            lines.append(
                CartLineView(
                    product_id=item.product_id,
                    vendor_id=item.vendor_id,
                    size=item.size,
                    color=item.color,
                    quantity=item.quantity,
                )
            )
            continue

        in_stock = variant.active and variant.stock >= item.quantity
        lines.append(
            CartLineView(
                product_id=item.product_id,
                vendor_id=variant.vendor_id,
                size=item.size,
                color=item.color,
                quantity=item.quantity,
                name=variant.name,
                slug=variant.slug,
                image=variant.image,
                mrp=variant.mrp,
                selling_price=variant.selling_price,
                final_price=variant.final_price,
                line_total=round(variant.final_price * item.quantity, 2),
                available_stock=variant.stock,
                available=variant.active,
                in_stock=in_stock,
            )
        )

    counted = [line for line in lines if line.in_stock]
    subtotal = round(sum(line.line_total for line in counted), 2)
    shipping_charges, vendor_shipping = compute_shipping(
        (line.vendor_id, line.line_total) for line in counted
    )

    return CartView(
        items=lines,
        subtotal=subtotal,
        shipping_charges=shipping_charges,
        vendor_shipping=vendor_shipping,
        total=round(subtotal + shipping_charges, 2),
        item_count=len(lines),
    )
