"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone

import pytest
from rest_framework.test import APIClient

from raffles import models as orm
from raffles.domain import HoldWindow
from raffles.services import (
    ExpirySweeper,
    InventoryService,
    PurchaseService,
    Reconciler,
    ReservationService,
)
from raffles.stores import DjangoOrderLedger, DjangoTicketStore

HOLD = HoldWindow.minutes(30)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> DjangoTicketStore:
    return DjangoTicketStore()


@pytest.fixture
def ledger() -> DjangoOrderLedger:
    return DjangoOrderLedger()


@pytest.fixture
def inventory(store) -> InventoryService:
    return InventoryService(store)


@pytest.fixture
def reservations(store) -> ReservationService:
    return ReservationService(store, hold_window=HOLD)


@pytest.fixture
def purchases(store, ledger) -> PurchaseService:
    return PurchaseService(store, ledger)


@pytest.fixture
def sweeper(store) -> ExpirySweeper:
    return ExpirySweeper(store)


@pytest.fixture
def reconciler(store, ledger) -> Reconciler:
    return Reconciler(store, ledger, hold_window=HOLD)


@pytest.fixture
def make_competition(inventory):
    def make(
        total_tickets: int = 10,
        title: str = "Family car",
        initialize: bool = True,
        max_tickets_per_user: int | None = None,
    ):
        competition = orm.Competition.objects.create(
            title=title,
            total_tickets=total_tickets,
            max_tickets_per_user=max_tickets_per_user,
        )
        if initialize:
            inventory.initialize(str(competition.pk))
        return competition

    return make


@pytest.fixture
def competition(db, make_competition) -> orm.Competition:
    return make_competition(total_tickets=10)


def snapshot(competition: orm.Competition) -> list[tuple]:
    """Every column of every ticket row plus the competition counter."""
    rows = list(
        orm.Ticket.objects.filter(competition=competition)
        .order_by("number")
        .values_list("number", "status", "holder_id", "reserved_until", "order_id", "updated_at")
    )
    competition.refresh_from_db()
    return rows + [("tickets_sold", competition.tickets_sold)]


def ticket(competition: orm.Competition, number: int) -> orm.Ticket:
    return orm.Ticket.objects.get(competition=competition, number=number)
