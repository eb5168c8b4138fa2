from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.models.user import User
from marketplace.schemas.cart_schemas import (
    CartAddRequest,
    CartMergeRequest,
    CartRemoveRequest,
    CartUpdateRequest,
    CartView,
)
from marketplace.services import cart_service
from marketplace.services.cart_service import CartOwner
from marketplace.utils.token import get_current_user, get_optional_user

router = APIRouter()


def get_cart_owner(
    current_user: Optional[User] = Depends(get_optional_user),
    x_session_id: Optional[str] = Header(default=None),
) -> CartOwner:
    if current_user:
        return CartOwner(user_id=current_user.id)
    return CartOwner(session_id=x_session_id)


@router.get("/", response_model=CartView)
def get_cart(
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_cart_owner),
):
    return cart_service.compute_view(session, owner)


@router.post("/add", response_model=CartView)
def add_to_cart(
    payload: CartAddRequest,
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_cart_owner),
):
    cart_service.add_item(session, owner, payload.product_id, payload.size, payload.color, payload.quantity)
    return cart_service.compute_view(session, owner)


@router.put("/update", response_model=CartView)
def update_cart_item(
    payload: CartUpdateRequest,
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_cart_owner),
):
    cart_service.update_item(session, owner, payload.product_id, payload.size, payload.color, payload.quantity)
    return cart_service.compute_view(session, owner)


@router.delete("/remove", response_model=CartView)
def remove_cart_item(
    payload: CartRemoveRequest,
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_cart_owner),
):
    cart_service.remove_item(session, owner, payload.product_id, payload.size, payload.color)
    return cart_service.compute_view(session, owner)


@router.delete("/clear")
def clear_cart(
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_cart_owner),
):
    cart_service.clear(session, owner)
    return {"message": "Cart cleared"}


@router.post("/merge", response_model=CartView)
def merge_cart(
    payload: CartMergeRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    cart_service.merge(session, payload.session_id, current_user.id)
    return cart_service.compute_view(session, CartOwner(user_id=current_user.id))
