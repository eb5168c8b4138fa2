import logging

from marketplace.notifications.events import NotificationEvent
from marketplace.notifications.rules import NOTIFICATION_RULES

logger = logging.getLogger(__name__)


def _deliver(notifier, event: NotificationEvent, phone: str, template, variables: dict) -> bool:
    try:
        delivered = notifier.send(phone, template, variables)
    except Exception:
        logger.exception(f"SMS for {event.value} to {phone} failed")
        return False

    if not delivered:
        logger.warning(f"SMS for {event.value} to {phone} was not delivered")
    return delivered


def dispatch_order_event(
    *,
    event: NotificationEvent,
    phone: str | None,
    variables: dict,
    notifier=None,
    background_tasks=None,
):
    """
    Central notification dispatcher.

    Best-effort: with ``background_tasks`` the SMS goes out after the
    response is sent; without it the send happens inline. Either way a
    failure is logged and never reaches the caller.
    """
    template = NOTIFICATION_RULES.get(event)
    if notifier is None or template is None or not phone:
        return

    if background_tasks is not None:
        background_tasks.add_task(_deliver, notifier, event, phone, template, variables)
        return

    _deliver(notifier, event, phone, template, variables)
