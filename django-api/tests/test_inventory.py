"""Tests for InventoryService and the ticket set it manages.

Run with: pytest tests/test_inventory.py -v
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from raffles import models as orm
from raffles.domain.errors import (
    AlreadyInitializedError,
    CompetitionNotFoundError,
    InvalidCompetitionIdError,
    InvalidTicketNumberError,
)
from tests.conftest import ticket


@pytest.mark.django_db
class TestInitialize:
    """Tests for creating a competition's tickets."""

    def test_creates_every_number_available(self, make_competition):
        """One available row per number 1..total_tickets."""
        competition = make_competition(total_tickets=25)
        numbers = list(
            orm.Ticket.objects.filter(competition=competition).values_list("number", flat=True)
        )
        assert numbers == list(range(1, 26))
        assert not orm.Ticket.objects.exclude(status="available").exists()

    def test_second_initialize_rejected_without_duplicates(self, inventory, competition):
        """Re-initializing raises and leaves exactly one row per number."""
        with pytest.raises(AlreadyInitializedError):
            inventory.initialize(str(competition.pk))
        assert orm.Ticket.objects.filter(competition=competition).count() == 10

    def test_unknown_competition(self, inventory):
        with pytest.raises(CompetitionNotFoundError):
            inventory.initialize(str(uuid4()))

    def test_invalid_competition_id(self, inventory):
        with pytest.raises(InvalidCompetitionIdError):
            inventory.initialize("42")


@pytest.mark.django_db
class TestGetStatuses:
    """Tests for the status snapshot."""

    def test_all_available_initially(self, inventory, competition, now):
        statuses = inventory.get_statuses(str(competition.pk), now=now)
        assert statuses.available == list(range(1, 11))
        assert statuses.reserved == []
        assert statuses.purchased == []

    def test_buckets_cover_every_ticket_once(
        self, inventory, reservations, purchases, competition, now
    ):
        """available + reserved + purchased always equals total_tickets."""
        cid = str(competition.pk)
        reservations.reserve(cid, [1, 2], "alice", now=now)
        reservations.reserve(cid, [3], "bob", now=now)
        purchases.purchase(cid, [3], "bob", order_id=1, now=now)

        statuses = inventory.get_statuses(cid, now=now)
        assert statuses.reserved == [1, 2]
        assert statuses.purchased == [3]
        assert statuses.total == 10
        everything = statuses.available + statuses.reserved + statuses.purchased
        assert sorted(everything) == list(range(1, 11))

    def test_lapsed_hold_reads_available_before_sweep(
        self, inventory, reservations, competition, now
    ):
        """An expired reservation is reported available while the row still says reserved."""
        cid = str(competition.pk)
        reservations.reserve(cid, [5], "alice", now=now)
        later = now + timedelta(minutes=31)

        assert ticket(competition, 5).status == "reserved"
        statuses = inventory.get_statuses(cid, now=later)
        assert 5 in statuses.available
        assert statuses.reserved == []

    def test_unknown_competition(self, inventory):
        with pytest.raises(CompetitionNotFoundError):
            inventory.get_statuses(str(uuid4()))


@pytest.mark.django_db
class TestIsAvailable:
    """Tests for single-ticket availability."""

    def test_free_ticket(self, inventory, competition, now):
        assert inventory.is_available(str(competition.pk), 4, now=now)

    def test_held_ticket(self, inventory, reservations, competition, now):
        reservations.reserve(str(competition.pk), [4], "alice", now=now)
        assert not inventory.is_available(str(competition.pk), 4, now=now)

    def test_lapsed_hold_is_available(self, inventory, reservations, competition, now):
        reservations.reserve(str(competition.pk), [4], "alice", now=now)
        assert inventory.is_available(str(competition.pk), 4, now=now + timedelta(minutes=30))

    def test_out_of_range(self, inventory, competition):
        with pytest.raises(InvalidTicketNumberError):
            inventory.is_available(str(competition.pk), 11)


@pytest.mark.django_db
class TestReset:
    """Tests for the admin competition reset."""

    def test_reset_recreates_available_set(
        self, inventory, reservations, purchases, competition, now
    ):
        cid = str(competition.pk)
        reservations.reserve(cid, [1, 2], "alice", now=now)
        purchases.purchase(cid, [1, 2], "alice", order_id=5, now=now)
        reservations.reserve(cid, [3], "bob", now=now)

        assert inventory.reset(cid) == 10

        competition.refresh_from_db()
        assert competition.tickets_sold == 0
        statuses = inventory.get_statuses(cid, now=now)
        assert statuses.available == list(range(1, 11))
        assert orm.Ticket.objects.filter(competition=competition).count() == 10
