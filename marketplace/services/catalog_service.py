# marketplace/services/catalog_service.py
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select

from marketplace.models.product import Product, ProductVariant

logger = logging.getLogger(__name__)


@dataclass
class VariantInfo:
    """Live price and stock for one size/color of a product."""

    product_id: int
    variant_id: int
    vendor_id: int
    name: str
    slug: str
    image: Optional[str]
    size: str
    color: str
    mrp: float
    selling_price: float
    vendor_discount: float
    website_discount: float
    final_price: float
    stock: int
    active: bool


def get_variant(session: Session, product_id: int, size: str, color: str) -> Optional[VariantInfo]:
    """Current catalog view of a variant, or None when product or variant is gone."""
    row = session.exec(
        select(Product, ProductVariant)
        .join(ProductVariant, ProductVariant.product_id == Product.id)
        .where(
            Product.id == product_id,
            ProductVariant.size == size,
            ProductVariant.color == color,
        )
        .execution_options(populate_existing=True)
    ).first()

    if not row:
        return None

    product, variant = row
    return VariantInfo(
        product_id=product.id,
        variant_id=variant.id,
        vendor_id=product.vendor_id,
        name=product.name,
        slug=product.slug,
        image=product.images[0] if product.images else None,
        size=variant.size,
        color=variant.color,
        mrp=product.mrp,
        selling_price=product.selling_price,
        vendor_discount=product.vendor_discount,
        website_discount=product.website_discount,
        final_price=product.final_price,
        stock=variant.stock,
        active=product.is_active,
    )


def decrement_stock(session: Session, product_id: int, size: str, color: str, quantity: int) -> bool:
    """
    Conditional decrement: succeeds only if the variant still has
    ``quantity`` units at the moment of the write.
    """
    result = session.execute(
        update(ProductVariant)
        .where(
            ProductVariant.product_id == product_id,
            ProductVariant.size == size,
            ProductVariant.color == color,
            ProductVariant.stock >= quantity,
        )
        .values(stock=ProductVariant.stock - quantity)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        logger.warning(
            f"Stock reservation failed: product {product_id} ({size}/{color}) qty {quantity}"
        )
        return False

    session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(total_sold=Product.total_sold + quantity)
        .execution_options(synchronize_session=False)
    )
    return True


def release_stock(session: Session, product_id: int, size: str, color: str, quantity: int) -> bool:
    """Put reserved units back, e.g. after a cancellation."""
    result = session.execute(
        update(ProductVariant)
        .where(
            ProductVariant.product_id == product_id,
            ProductVariant.size == size,
            ProductVariant.color == color,
        )
        .values(stock=ProductVariant.stock + quantity)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        # variant deleted since the order was placed, nothing to restock
        logger.warning(f"Cannot restock missing variant: product {product_id} ({size}/{color})")
        return False

    session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(total_sold=Product.total_sold - quantity)
        .execution_options(synchronize_session=False)
    )
    return True
