from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime

from marketplace.constants.order_status import ItemStatus

if TYPE_CHECKING:
    from marketplace.models.order import Order


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_item"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    product_id: int = Field(foreign_key="product.id")
    vendor_id: int = Field(foreign_key="vendor.id", index=True)

    # snapshot of the product at checkout
    name: str
    image: Optional[str] = None
    size: str
    color: str
    quantity: int = Field(ge=1)
    mrp: float
    selling_price: float
    vendor_discount: float = Field(default=0)
    website_discount: float = Field(default=0)
    final_price: float

    status: ItemStatus = Field(default=ItemStatus.pending)
    tracking_id: Optional[str] = None
    delivered_at: Optional[datetime] = None

    commission: float
    vendor_earning: float

    updated_at: datetime = Field(default_factory=datetime.utcnow)

    order: Optional["Order"] = Relationship(back_populates="items")

    @property
    def line_total(self) -> float:
        return round(self.final_price * self.quantity, 2)
