from enum import Enum


class TicketType(str, Enum):
    missing_pair = "missing_pair"
    damage_pair = "damage_pair"
    wrong_products = "wrong_products"
    other = "other"


class TicketStatus(str, Enum):
    open = "open"
    in_progress = "in_progress"
    resolved = "resolved"
    rejected = "rejected"


ALLOWED_TRANSITIONS = {
    TicketStatus.open: [TicketStatus.in_progress, TicketStatus.resolved, TicketStatus.rejected],
    TicketStatus.in_progress: [TicketStatus.resolved, TicketStatus.rejected],
    TicketStatus.resolved: [],
    TicketStatus.rejected: [],
}
