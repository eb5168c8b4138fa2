# marketplace/services/sequence_service.py
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from marketplace.models.counter import Counter

ORDER_SEQUENCE = "order"
TICKET_SEQUENCE = "ticket"

ORDER_PREFIX = "ORD"
TICKET_PREFIX = "TKT"
SEQUENCE_WIDTH = 6


def next_sequence(session: Session, name: str) -> int:
    """
    Atomic fetch-and-add on the named counter.

    The increment and the read happen in one UPDATE ... RETURNING, so two
    transactions can never observe the same value. The counter row is
    created on first use; losing that insert race falls back to the UPDATE.
    """
    statement = (
        update(Counter)
        .where(Counter.name == name)
        .values(value=Counter.value + 1)
        .returning(Counter.value)
        .execution_options(synchronize_session=False)
    )

    value = session.execute(statement).scalar_one_or_none()
    if value is not None:
        return value

    try:
        with session.begin_nested():
            session.add(Counter(name=name, value=1))
        return 1
    except IntegrityError:
        return session.execute(statement).scalar_one()


def format_identifier(prefix: str, value: int) -> str:
    return f"{prefix}{str(value).zfill(SEQUENCE_WIDTH)}"


def next_order_number(session: Session) -> str:
    return format_identifier(ORDER_PREFIX, next_sequence(session, ORDER_SEQUENCE))


def next_ticket_number(session: Session) -> str:
    return format_identifier(TICKET_PREFIX, next_sequence(session, TICKET_SEQUENCE))
