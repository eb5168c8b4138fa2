# marketplace/services/product_service.py
import logging
import re
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from marketplace.errors import Conflict, Forbidden, ProductNotFound
from marketplace.models.product import Product, ProductVariant
from marketplace.models.vendor import Vendor
from marketplace.schemas.product_schemas import ProductCreate, ProductUpdate, VariantIn

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _unique_slug(session: Session, name: str) -> str:
    base = slugify(name) or "product"
    slug = base
    n = 1
    while session.exec(select(Product.id).where(Product.slug == slug)).first():
        n += 1
        slug = f"{base}-{n}"
    return slug


def get_product(session: Session, product_id: int, active_only: bool = True) -> Product:
    product = session.get(Product, product_id)
    if not product or (active_only and not product.is_active):
        raise ProductNotFound(product_id)
    return product


def create_product(session: Session, vendor: Vendor, data: ProductCreate) -> Product:
    keys = [(v.size, v.color) for v in data.variants]
    if len(keys) != len(set(keys)):
        raise Conflict("Duplicate size/color variant")

    try:
        product = Product(
            vendor_id=vendor.id,
            slug=_unique_slug(session, data.name),
            **data.model_dump(exclude={"variants"}),
        )
        session.add(product)
        session.flush()

        for variant in data.variants:
            session.add(ProductVariant(product_id=product.id, **variant.model_dump()))

        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict("Product could not be created, slug or variant already exists")

    session.refresh(product)
    logger.info(f"Vendor {vendor.id} created product {product.id} ({product.slug})")
    return product


def set_variants(session: Session, vendor: Vendor, product_id: int, variants: List[VariantIn]) -> Product:
    """Create or restock size/color variants of a vendor's own product."""
    product = _own_product(session, vendor, product_id)

    try:
        for data in variants:
            variant = session.exec(
                select(ProductVariant).where(
                    ProductVariant.product_id == product.id,
                    ProductVariant.size == data.size,
                    ProductVariant.color == data.color,
                )
            ).first()

            if variant:
                variant.stock = data.stock
                variant.sku = data.sku
            else:
                variant = ProductVariant(product_id=product.id, **data.model_dump())
            session.add(variant)

        product.updated_at = datetime.utcnow()
        session.add(product)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(product)
    return product


def _own_product(session: Session, vendor: Vendor, product_id: int) -> Product:
    product = get_product(session, product_id, active_only=False)
    if product.vendor_id != vendor.id:
        raise Forbidden("Not authorized to edit this product", product_id=product_id)
    return product


def update_product(session: Session, vendor: Vendor, product_id: int, data: ProductUpdate) -> Product:
    """Edit a vendor's own product. The slug stays stable across renames."""
    product = _own_product(session, vendor, product_id)

    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(product, key, value)

    product.updated_at = datetime.utcnow()
    session.add(product)
    session.commit()
    session.refresh(product)
    logger.info(f"Vendor {vendor.id} updated product {product.id}")
    return product


def deactivate_product(session: Session, vendor: Vendor, product_id: int) -> Product:
    """Soft delete: the product leaves the catalog, order snapshots keep their copy."""
    product = _own_product(session, vendor, product_id)
    product.is_active = False
    product.updated_at = datetime.utcnow()
    session.add(product)
    session.commit()
    session.refresh(product)
    logger.info(f"Vendor {vendor.id} deactivated product {product.id}")
    return product


SORTS = {
    "newest": (Product.created_at.desc(), Product.id.desc()),
    "price_low": (Product.selling_price.asc(), Product.id.asc()),
    "price_high": (Product.selling_price.desc(), Product.id.desc()),
    "popular": (Product.total_sold.desc(), Product.id.desc()),
}


def list_products(
    session: Session,
    *,
    category: Optional[str] = None,
    gender: Optional[str] = None,
    brand: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    search: Optional[str] = None,
    sort: str = "newest",
):
    """Public catalog query over active products of active, approved vendors."""
    query = (
        select(Product)
        .join(Vendor, Vendor.id == Product.vendor_id)
        .where(Product.is_active == True, Vendor.is_active == True, Vendor.is_approved == True)  # noqa: E712
    )

    if category:
        query = query.where(Product.category == category)
    if gender:
        query = query.where(Product.gender == gender)
    if brand:
        query = query.where(Product.brand.ilike(f"%{brand}%"))
    if min_price is not None:
        query = query.where(Product.selling_price >= min_price)
    if max_price is not None:
        query = query.where(Product.selling_price <= max_price)
    if search:
        like = f"%{search}%"
        query = query.where(Product.name.ilike(like) | Product.description.ilike(like))

    return query.order_by(*SORTS.get(sort, SORTS["newest"]))


def list_vendor_products(session: Session, vendor: Vendor, active: Optional[bool] = None):
    query = select(Product).where(Product.vendor_id == vendor.id)
    if active is not None:
        query = query.where(Product.is_active == active)
    return query.order_by(Product.created_at.desc(), Product.id.desc())
