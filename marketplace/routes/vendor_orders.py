from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlmodel import Session

from marketplace.constants.order_status import ItemStatus
from marketplace.database import get_session
from marketplace.models.order import Order
from marketplace.models.vendor import Vendor
from marketplace.schemas.order_schemas import ItemStatusUpdateRequest, OrderItemOut, OrderOut
from marketplace.services import order_service
from marketplace.services.payment_gateway import get_payment_gateway
from marketplace.services.sms_service import get_notifier
from marketplace.utils.pagination import paginate
from marketplace.utils.token import get_current_vendor

router = APIRouter()


def vendor_view(order: Order, vendor_id: int) -> dict:
    """The order as one vendor sees it: other vendors' lines are hidden."""
    data = OrderOut.model_validate(order).model_dump(mode="json")
    data["items"] = [
        OrderItemOut.model_validate(item).model_dump(mode="json")
        for item in order_service.vendor_items(order, vendor_id)
    ]
    return data


@router.get("/")
def list_vendor_orders(
    status: Optional[ItemStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    vendor: Vendor = Depends(get_current_vendor),
):
    return paginate(
        session=session,
        query=order_service.list_vendor_orders(session, vendor.id, status),
        page=page,
        limit=limit,
        serializer=lambda order: vendor_view(order, vendor.id),
    )


@router.put("/{order_id}/items/{item_id}/status")
def update_item_status(
    order_id: str,
    item_id: int,
    payload: ItemStatusUpdateRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    vendor: Vendor = Depends(get_current_vendor),
    gateway=Depends(get_payment_gateway),
    notifier=Depends(get_notifier),
):
    order = order_service.update_item_status(
        session,
        order_id,
        item_id,
        payload.status,
        tracking_id=payload.tracking_id,
        vendor_id=vendor.id,
        actor=f"vendor:{vendor.id}",
        gateway=gateway,
        notifier=notifier,
        background_tasks=background_tasks,
    )
    return vendor_view(order, vendor.id)
