from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CartLineKey(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product_id: int
    size: str = Field(min_length=1)
    color: str = Field(min_length=1)


class CartAddRequest(CartLineKey):
    quantity: int = Field(default=1, ge=1)


class CartUpdateRequest(CartLineKey):
    quantity: int  # 0 or less removes the line


class CartRemoveRequest(CartLineKey):
    pass


class CartMergeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    session_id: str = Field(min_length=1)


class CartLineView(BaseModel):
    product_id: int
    vendor_id: int
    size: str
    color: str
    quantity: int

    # recomputed from the catalog on every read
    name: Optional[str] = None
    slug: Optional[str] = None
    image: Optional[str] = None
    mrp: float = 0
    selling_price: float = 0
    final_price: float = 0
    line_total: float = 0
    available_stock: int = 0
    available: bool = False   # product active and variant exists
    in_stock: bool = False    # available and enough units for this quantity


class CartView(BaseModel):
    items: List[CartLineView] = []
    subtotal: float = 0
    shipping_charges: float = 0
    vendor_shipping: Dict[int, float] = {}
    total: float = 0
    item_count: int = 0
