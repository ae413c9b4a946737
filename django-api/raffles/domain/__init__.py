from raffles.domain.models import (
    Competition,
    DriftReport,
    Hold,
    Order,
    OwnershipInfo,
    PaymentStatus,
    ReconcileReport,
    Ticket,
    TicketStats,
    TicketStatus,
    TicketStatuses,
)
from raffles.domain.value_objects import (
    CompetitionId,
    HoldWindow,
    OrderId,
    TicketNumber,
    TicketSelection,
    hold_is_live,
)

__all__ = [
    "Competition",
    "DriftReport",
    "Hold",
    "Order",
    "OwnershipInfo",
    "PaymentStatus",
    "ReconcileReport",
    "Ticket",
    "TicketStats",
    "TicketStatus",
    "TicketStatuses",
    "CompetitionId",
    "HoldWindow",
    "OrderId",
    "TicketNumber",
    "TicketSelection",
    "hold_is_live",
]
