from raffles.handlers.views import (
    CompetitionStatsView,
    InitializeTicketsView,
    PurchaseView,
    ReconcileView,
    ReleaseView,
    ReservationView,
    ResetTicketsView,
    TicketAvailabilityView,
    TicketOwnerView,
    TicketStatusView,
)

__all__ = [
    "CompetitionStatsView",
    "InitializeTicketsView",
    "PurchaseView",
    "ReconcileView",
    "ReleaseView",
    "ReservationView",
    "ResetTicketsView",
    "TicketAvailabilityView",
    "TicketOwnerView",
    "TicketStatusView",
]
