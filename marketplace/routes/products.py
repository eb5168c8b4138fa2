from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.models.vendor import Vendor
from marketplace.schemas.product_schemas import ProductCreate, ProductOut, ProductUpdate, VariantIn
from marketplace.services import product_service
from marketplace.utils.pagination import paginate
from marketplace.utils.token import get_current_vendor

router = APIRouter()
vendor_router = APIRouter()


# -------- PUBLIC --------

@router.get("/")
def list_products(
    category: Optional[str] = None,
    gender: Optional[str] = None,
    brand: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    search: Optional[str] = None,
    sort: Literal["newest", "price_low", "price_high", "popular"] = "newest",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
):
    return paginate(
        session=session,
        query=product_service.list_products(
            session,
            category=category,
            gender=gender,
            brand=brand,
            min_price=min_price,
            max_price=max_price,
            search=search,
            sort=sort,
        ),
        page=page,
        limit=limit,
        serializer=ProductOut.model_validate,
    )


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, session: Session = Depends(get_session)):
    return product_service.get_product(session, product_id)


# -------- VENDOR --------

@vendor_router.get("/")
def my_products(
    active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    vendor: Vendor = Depends(get_current_vendor),
):
    return paginate(
        session=session,
        query=product_service.list_vendor_products(session, vendor, active),
        page=page,
        limit=limit,
        serializer=ProductOut.model_validate,
    )


@vendor_router.post("/", response_model=ProductOut, status_code=201)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
    vendor: Vendor = Depends(get_current_vendor),
):
    return product_service.create_product(session, vendor, payload)


@vendor_router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
    vendor: Vendor = Depends(get_current_vendor),
):
    return product_service.update_product(session, vendor, product_id, payload)


@vendor_router.delete("/{product_id}", response_model=ProductOut)
def deactivate_product(
    product_id: int,
    session: Session = Depends(get_session),
    vendor: Vendor = Depends(get_current_vendor),
):
    return product_service.deactivate_product(session, vendor, product_id)


@vendor_router.put("/{product_id}/variants", response_model=ProductOut)
def set_variants(
    product_id: int,
    payload: List[VariantIn],
    session: Session = Depends(get_session),
    vendor: Vendor = Depends(get_current_vendor),
):
    return product_service.set_variants(session, vendor, product_id, payload)
