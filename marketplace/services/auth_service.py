# marketplace/services/auth_service.py
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from marketplace.config import settings
from marketplace.errors import InvalidOTP, UserNotFound, ValidationError
from marketplace.models.user import User
from marketplace.notifications import NotificationEvent, dispatch_order_event
from marketplace.services import cart_service
from marketplace.utils.token import create_access_token

logger = logging.getLogger(__name__)

OTP_LENGTH = 6


def generate_otp() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(OTP_LENGTH))


def get_user_by_phone(session: Session, phone: str) -> Optional[User]:
    return session.exec(select(User).where(User.phone == phone)).first()


def send_otp(session: Session, phone: str, *, notifier=None, background_tasks=None) -> bool:
    """
    Issue a fresh login code for ``phone``, registering the number on
    first use. The code is valid for ``OTP_EXPIRY_MINUTES``.

    Returns True once the code is stored; the SMS itself is best-effort.
    """
    otp = generate_otp()
    expiry = datetime.utcnow() + timedelta(minutes=settings.OTP_EXPIRY_MINUTES)

    user = get_user_by_phone(session, phone)
    try:
        if not user:
            try:
                with session.begin_nested():
                    user = User(phone=phone)
                    session.add(user)
            except IntegrityError:
                # registered by a parallel request
                user = get_user_by_phone(session, phone)

        if not user.is_active:
            raise ValidationError("Account is disabled", phone=phone)

        user.otp = otp
        user.otp_expiry = expiry
        user.updated_at = datetime.utcnow()
        session.add(user)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(user)
    logger.info(f"OTP issued for {phone}")

    dispatch_order_event(
        event=NotificationEvent.OTP_REQUESTED,
        phone=phone,
        variables={"otp": otp},
        notifier=notifier,
        background_tasks=background_tasks,
    )
    return True


def verify_otp(session: Session, phone: str, otp: str, session_id: Optional[str] = None) -> Tuple[str, User]:
    """Check the code, clear it, fold any guest cart in and issue a JWT."""
    user = get_user_by_phone(session, phone)
    if not user:
        raise UserNotFound(phone)

    if not user.otp or not user.otp_expiry:
        raise InvalidOTP("No OTP requested for this number")

    if user.otp_expiry < datetime.utcnow():
        raise InvalidOTP("OTP has expired")

    if not secrets.compare_digest(user.otp, otp):
        raise InvalidOTP("Invalid OTP")

    user.otp = None
    user.otp_expiry = None
    user.is_verified = True
    user.updated_at = datetime.utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)

    if session_id:
        cart_service.merge(session, session_id, user.id)

    token = create_access_token({"user_id": user.id, "role": user.role.value})
    logger.info(f"User {user.id} logged in")
    return token, user
