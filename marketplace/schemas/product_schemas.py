from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class VariantIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    size: str = Field(min_length=1)
    color: str = Field(min_length=1)
    stock: int = Field(ge=0)
    sku: str = Field(min_length=1)


class ProductCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    description: str
    category: str
    brand: Optional[str] = None
    gender: str = "unisex"
    images: List[str] = []
    mrp: float = Field(gt=0)
    selling_price: float = Field(gt=0)
    vendor_discount: float = Field(default=0, ge=0, le=100)
    website_discount: float = Field(default=0, ge=0, le=100)
    variants: List[VariantIn] = Field(min_length=1)


class VariantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    size: str
    color: str
    stock: int
    sku: str


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vendor_id: int
    name: str
    slug: str
    description: str
    category: str
    brand: Optional[str] = None
    gender: str = "unisex"
    images: List[str] = []
    mrp: float
    selling_price: float
    vendor_discount: float
    website_discount: float
    final_price: float
    is_active: bool
    variants: List[VariantOut] = []


class ProductUpdate(BaseModel):
    """Partial edit; prices changed here never touch orders already placed."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    gender: Optional[str] = None
    images: Optional[List[str]] = None
    mrp: Optional[float] = Field(default=None, gt=0)
    selling_price: Optional[float] = Field(default=None, gt=0)
    vendor_discount: Optional[float] = Field(default=None, ge=0, le=100)
    website_discount: Optional[float] = Field(default=None, ge=0, le=100)
    is_active: Optional[bool] = None
