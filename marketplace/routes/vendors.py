from fastapi import APIRouter, Depends
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.models.user import User
from marketplace.models.vendor import Vendor
from marketplace.schemas.vendor_schemas import VendorOut, VendorProfileUpdate, VendorRegister
from marketplace.services import vendor_service
from marketplace.utils.token import get_current_user

router = APIRouter()


def get_own_vendor(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Vendor:
    """The caller's vendor profile, approved or not."""
    return vendor_service.get_vendor_for_user(session, current_user.id)


@router.post("/register", response_model=VendorOut, status_code=201)
def register_vendor(
    payload: VendorRegister,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return vendor_service.register_vendor(session, current_user, payload)


@router.get("/profile", response_model=VendorOut)
def get_profile(vendor: Vendor = Depends(get_own_vendor)):
    return vendor


@router.put("/profile", response_model=VendorOut)
def update_profile(
    payload: VendorProfileUpdate,
    session: Session = Depends(get_session),
    vendor: Vendor = Depends(get_own_vendor),
):
    return vendor_service.update_profile(session, vendor, payload)
