from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import CheckConstraint, Column, JSON, UniqueConstraint
from typing import Optional, List
from datetime import datetime

from marketplace.utils.pricing import compute_final_price


class Product(SQLModel, table=True):
    #main info
    id: Optional[int] = Field(default=None, primary_key=True)
    vendor_id: int = Field(foreign_key="vendor.id", index=True)
    name: str
    slug: str = Field(index=True, unique=True)
    description: str
    category: str
    brand: Optional[str] = None
    gender: str = Field(default="unisex")

    images: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    #pricing, discounts are percentages of selling_price
    mrp: float
    selling_price: float
    vendor_discount: float = Field(default=0)
    website_discount: float = Field(default=0)

    is_active: bool = Field(default=True)
    total_sold: int = Field(default=0)

    #timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    variants: List["ProductVariant"] = Relationship(back_populates="product")

    @property
    def final_price(self) -> float:
        return compute_final_price(
            self.selling_price, self.vendor_discount, self.website_discount
        )


class ProductVariant(SQLModel, table=True):
    __tablename__ = "product_variant"
    __table_args__ = (
        UniqueConstraint("product_id", "size", "color", name="uq_variant_size_color"),
        CheckConstraint("stock >= 0", name="ck_variant_stock_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="product.id", index=True)
    size: str
    color: str
    stock: int = Field(default=0, ge=0)
    sku: str

    product: Optional[Product] = Relationship(back_populates="variants")
