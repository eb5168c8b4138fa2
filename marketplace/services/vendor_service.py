# marketplace/services/vendor_service.py
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from marketplace.errors import Conflict, VendorNotFound
from marketplace.models.user import User, UserRole
from marketplace.models.vendor import Vendor
from marketplace.schemas.vendor_schemas import VendorProfileUpdate, VendorRegister

logger = logging.getLogger(__name__)


def get_vendor(session: Session, vendor_id: int) -> Vendor:
    vendor = session.get(Vendor, vendor_id)
    if not vendor:
        raise VendorNotFound(vendor_id)
    return vendor


def get_vendor_for_user(session: Session, user_id: int) -> Vendor:
    vendor = session.exec(select(Vendor).where(Vendor.user_id == user_id)).first()
    if not vendor:
        raise VendorNotFound()
    return vendor


def register_vendor(session: Session, user: User, data: VendorRegister) -> Vendor:
    """
    Submit a seller application. The vendor starts unapproved and can sell
    only after an admin approves it; the user becomes a seller right away.
    """
    if session.exec(select(Vendor.id).where(Vendor.user_id == user.id)).first():
        raise Conflict("You already have a vendor profile")

    try:
        vendor = Vendor(user_id=user.id, **data.model_dump())
        session.add(vendor)

        if user.role == UserRole.customer:
            user.role = UserRole.seller
            user.updated_at = datetime.utcnow()
            session.add(user)

        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict("You already have a vendor profile")

    session.refresh(vendor)
    logger.info(f"User {user.id} registered vendor {vendor.id} ({vendor.business_name}), pending approval")
    return vendor


def update_profile(session: Session, vendor: Vendor, data: VendorProfileUpdate) -> Vendor:
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(vendor, key, value)
    return _save(session, vendor)


def _save(session: Session, vendor: Vendor) -> Vendor:
    vendor.updated_at = datetime.utcnow()
    session.add(vendor)
    session.commit()
    session.refresh(vendor)
    return vendor


def approve_vendor(session: Session, vendor_id: int) -> Vendor:
    vendor = get_vendor(session, vendor_id)
    vendor.is_approved = True
    logger.info(f"Vendor {vendor_id} approved")
    return _save(session, vendor)


def set_commission(session: Session, vendor_id: int, commission: float) -> Vendor:
    """New rate applies to future orders; placed orders keep their snapshot."""
    vendor = get_vendor(session, vendor_id)
    vendor.commission = commission
    logger.info(f"Vendor {vendor_id} commission set to {commission}%")
    return _save(session, vendor)


def toggle_active(session: Session, vendor_id: int) -> Vendor:
    vendor = get_vendor(session, vendor_id)
    vendor.is_active = not vendor.is_active
    logger.info(f"Vendor {vendor_id} {'activated' if vendor.is_active else 'deactivated'}")
    return _save(session, vendor)


def list_vendors(session: Session, approved: Optional[bool] = None):
    query = select(Vendor)
    if approved is not None:
        query = query.where(Vendor.is_approved == approved)
    return query.order_by(Vendor.created_at.desc(), Vendor.id.desc())
