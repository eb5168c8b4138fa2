# marketplace/services/wallet_service.py
import logging

from sqlalchemy import update
from sqlmodel import Session, select

from marketplace.errors import NotFound, ValidationError
from marketplace.models.user import User

logger = logging.getLogger(__name__)


def get_balance(session: Session, user_id: int) -> float:
    balance = session.exec(select(User.wallet).where(User.id == user_id)).first()
    return balance or 0


def debit(session: Session, user_id: int, amount: float) -> bool:
    """
    Conditional debit: succeeds only if the balance still covers ``amount``
    at the moment of the write. Joins the caller's transaction.
    """
    result = session.execute(
        update(User)
        .where(User.id == user_id, User.wallet >= amount)
        .values(wallet=User.wallet - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(f"Wallet debit of {amount} refused for user {user_id}")
        return False
    return True


def credit(session: Session, user_id: int, amount: float) -> None:
    result = session.execute(
        update(User)
        .where(User.id == user_id)
        .values(wallet=User.wallet + amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFound("User not found", user_id=user_id)


def top_up(session: Session, user_id: int, amount: float) -> float:
    """Admin credit, e.g. goodwill after a ticket. Returns the new balance."""
    if amount <= 0:
        raise ValidationError("Amount must be positive", amount=amount)

    try:
        credit(session, user_id, amount)
        session.commit()
    except Exception:
        session.rollback()
        raise

    balance = get_balance(session, user_id)
    logger.info(f"Wallet of user {user_id} credited {amount}, balance {balance}")
    return balance
