# marketplace/services/coupon_service.py
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_, update
from sqlmodel import Session, select

from marketplace.errors import Conflict, InvalidCoupon
from marketplace.models.coupon import Coupon, DiscountType
from marketplace.schemas.coupon_schemas import CouponCreate

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return code.strip().upper()


def compute_discount(coupon: Coupon, subtotal: float) -> float:
    if coupon.discount_type == DiscountType.percentage:
        discount = (subtotal * coupon.discount_value) / 100
        if coupon.max_discount:
            discount = min(discount, coupon.max_discount)
    else:
        discount = coupon.discount_value

    # never more than the goods are worth
    return round(min(discount, subtotal), 2)


def validate_coupon(session: Session, code: str, subtotal: float, now: Optional[datetime] = None) -> Tuple[Coupon, float]:
    """Check the coupon rules against a subtotal and return the coupon with its discount."""
    code = normalize_code(code)
    now = now or datetime.utcnow()

    coupon = session.exec(select(Coupon).where(Coupon.code == code)).first()
    if not coupon or not coupon.is_active:
        raise InvalidCoupon(code, "not found or inactive")

    if now < coupon.valid_from or now > coupon.valid_until:
        raise InvalidCoupon(code, "outside its validity window")

    if subtotal < coupon.min_order_value:
        raise InvalidCoupon(code, f"minimum order value is {coupon.min_order_value}")

    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise InvalidCoupon(code, "usage limit reached")

    return coupon, compute_discount(coupon, subtotal)


def consume_coupon(session: Session, coupon: Coupon) -> None:
    """Count one use, conditional on the limit still having room."""
    result = session.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon.id,
            or_(Coupon.usage_limit.is_(None), Coupon.used_count < Coupon.usage_limit),
        )
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidCoupon(coupon.code, "usage limit reached")


def create_coupon(session: Session, data: CouponCreate) -> Coupon:
    code = normalize_code(data.code)
    if session.exec(select(Coupon).where(Coupon.code == code)).first():
        raise Conflict(f"Coupon {code} already exists", coupon_code=code)

    coupon = Coupon(**data.model_dump(exclude={"code"}), code=code)
    session.add(coupon)
    session.commit()
    session.refresh(coupon)

    logger.info(f"Coupon {code} created")
    return coupon


def list_coupons(session: Session, active_only: bool = False) -> List[Coupon]:
    query = select(Coupon).order_by(Coupon.created_at.desc())
    if active_only:
        query = query.where(Coupon.is_active == True)  # noqa: E712
    return session.exec(query).all()
