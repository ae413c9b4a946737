from django.urls import path

from raffles.handlers import (
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

urlpatterns = [
    path(
        "competitions/<str:competition_id>/tickets",
        TicketStatusView.as_view(),
        name="ticket-status",
    ),
    path(
        "competitions/<str:competition_id>/tickets/<int:number>/availability",
        TicketAvailabilityView.as_view(),
        name="ticket-availability",
    ),
    path(
        "competitions/<str:competition_id>/tickets/<int:number>/owner",
        TicketOwnerView.as_view(),
        name="ticket-owner",
    ),
    path(
        "competitions/<str:competition_id>/reservations",
        ReservationView.as_view(),
        name="reservation-create",
    ),
    path(
        "competitions/<str:competition_id>/reservations/release",
        ReleaseView.as_view(),
        name="reservation-release",
    ),
    path(
        "competitions/<str:competition_id>/purchases",
        PurchaseView.as_view(),
        name="purchase-create",
    ),
    path(
        "competitions/<str:competition_id>/stats",
        CompetitionStatsView.as_view(),
        name="competition-stats",
    ),
    path(
        "competitions/<str:competition_id>/reconcile",
        ReconcileView.as_view(),
        name="competition-reconcile",
    ),
    path(
        "competitions/<str:competition_id>/initialize",
        InitializeTicketsView.as_view(),
        name="competition-initialize",
    ),
    path(
        "competitions/<str:competition_id>/reset",
        ResetTicketsView.as_view(),
        name="competition-reset",
    ),
]
