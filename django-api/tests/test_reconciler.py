"""Tests for Reconciler.

Run with: pytest tests/test_reconciler.py -v
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from raffles import models as orm
from raffles.domain import TicketStatus
from raffles.domain.errors import CompetitionNotFoundError, InvalidTicketNumberError
from tests.conftest import ticket


def add_order(competition, order_id, user_id, numbers, payment_status):
    return orm.Order.objects.create(
        id=order_id,
        competition=competition,
        user_id=user_id,
        ticket_numbers=numbers,
        payment_status=payment_status,
    )


@pytest.mark.django_db
class TestReconcile:
    """Tests for rebuilding ticket statuses from orders."""

    def test_rebuilds_from_ledger(self, reconciler, competition, now):
        add_order(competition, 1, "alice", [1, 2], "completed")
        add_order(competition, 2, "bob", [3], "pending")
        add_order(competition, 3, "carol", [4], "failed")

        report = reconciler.reconcile(str(competition.pk), now=now)

        assert (report.purchased, report.reserved, report.available) == (2, 1, 7)
        one = ticket(competition, 1)
        assert one.status == "purchased"
        assert one.holder_id == "alice"
        assert one.order_id == 1
        three = ticket(competition, 3)
        assert three.status == "reserved"
        assert three.holder_id == "bob"
        assert three.reserved_until == now + timedelta(minutes=30)
        assert three.updated_at == now
        assert one.updated_at == now
        assert ticket(competition, 4).status == "available"
        competition.refresh_from_db()
        assert competition.tickets_sold == 2

    def test_overwrites_drifted_projection(
        self, reconciler, reservations, purchases, competition, now
    ):
        cid = str(competition.pk)
        reservations.reserve(cid, [1], "alice", now=now)
        purchases.purchase(cid, [1], "alice", order_id=1, now=now)
        reservations.reserve(cid, [5, 6], "mallory", now=now)
        orm.Competition.objects.filter(pk=competition.pk).update(tickets_sold=40)
        orm.Ticket.objects.filter(competition=competition, number=9).update(
            status="purchased", holder_id="ghost"
        )

        report = reconciler.reconcile(cid, now=now)

        assert report.tickets_sold_before == 40
        assert report.purchased == 1
        competition.refresh_from_db()
        assert competition.tickets_sold == 1
        assert ticket(competition, 9).status == "available"
        assert ticket(competition, 5).status == "available"
        assert ticket(competition, 1).status == "purchased"

    def test_conflicting_claims_go_to_earliest_completed(self, reconciler, competition, now):
        add_order(competition, 1, "alice", [1, 2], "completed")
        add_order(competition, 2, "bob", [2, 3], "completed")
        add_order(competition, 3, "carol", [3, 4], "pending")

        report = reconciler.reconcile(str(competition.pk), now=now)

        assert report.conflicts == (2, 3)
        assert ticket(competition, 2).holder_id == "alice"
        assert ticket(competition, 3).holder_id == "bob"
        assert ticket(competition, 4).holder_id == "carol"
        assert ticket(competition, 4).status == "reserved"

    def test_reports_out_of_range_numbers(self, reconciler, competition, now):
        add_order(competition, 1, "alice", [10, 11], "completed")

        report = reconciler.reconcile(str(competition.pk), now=now)

        assert report.out_of_range == (11,)
        assert report.purchased == 1

    def test_restores_missing_rows(self, reconciler, competition, now):
        orm.Ticket.objects.filter(competition=competition, number__in=[3, 4]).delete()

        reconciler.reconcile(str(competition.pk), now=now)

        numbers = list(
            orm.Ticket.objects.filter(competition=competition).values_list("number", flat=True)
        )
        assert numbers == list(range(1, 11))

    def test_unknown_competition(self, reconciler, db):
        with pytest.raises(CompetitionNotFoundError):
            reconciler.reconcile(str(uuid4()))

    def test_reconcile_all_covers_every_competition(self, reconciler, make_competition, now):
        first = make_competition(total_tickets=3, title="First")
        second = make_competition(total_tickets=4, title="Second")
        add_order(first, 1, "alice", [1], "completed")
        add_order(second, 2, "bob", [4], "completed")

        reports = reconciler.reconcile_all(now=now)

        assert {str(r.competition_id) for r in reports} == {str(first.pk), str(second.pk)}
        assert all(r.purchased == 1 for r in reports)


@pytest.mark.django_db
class TestAudit:
    """Tests for read-only drift detection."""

    def test_clean_competition(self, reconciler, reservations, purchases, competition, now):
        cid = str(competition.pk)
        reservations.reserve(cid, [1], "alice", now=now)
        purchases.purchase(cid, [1], "alice", order_id=1, now=now)

        assert not reconciler.audit(cid).has_drift

    def test_detects_counter_and_row_drift(self, reconciler, competition):
        add_order(competition, 1, "alice", [1, 2], "completed")
        orm.Ticket.objects.filter(competition=competition, number=1).update(
            status="purchased", holder_id="alice"
        )
        orm.Ticket.objects.filter(competition=competition, number=7).update(
            status="purchased", holder_id="ghost"
        )
        orm.Competition.objects.filter(pk=competition.pk).update(tickets_sold=5)

        report = reconciler.audit(str(competition.pk))

        assert report.has_drift
        assert report.tickets_sold == 5
        assert report.purchased_rows == 2
        assert report.missing_purchases == (2,)
        assert report.unbacked_purchases == (7,)
        assert ticket(competition, 7).status == "purchased"


@pytest.mark.django_db
class TestStatsAndOwnership:
    """Tests for aggregate statistics and ownership lookups."""

    def test_stats(self, reconciler, reservations, purchases, competition, now):
        cid = str(competition.pk)
        reservations.reserve(cid, [1, 2, 3], "alice", now=now)
        purchases.purchase(cid, [1, 2], "alice", order_id=1, now=now)
        reservations.release(cid, [3], "alice")
        reservations.reserve(cid, [4], "bob", now=now)

        stats = reconciler.stats(cid, now=now)

        assert (stats.available, stats.reserved, stats.purchased) == (7, 1, 2)
        assert stats.total_tickets == 10
        assert stats.tickets_sold == 2
        assert stats.in_sync

    def test_owner_of_reserved(self, reconciler, reservations, competition, now):
        cid = str(competition.pk)
        reservations.reserve(cid, [8], "bob", now=now)

        info = reconciler.owner_of(cid, 8, now=now)

        assert info.status is TicketStatus.RESERVED
        assert info.user_id == "bob"
        assert info.order_id is None
        assert info.reserved_until == now + timedelta(minutes=30)

    def test_owner_of_lapsed_hold_is_nobody(self, reconciler, reservations, competition, now):
        cid = str(competition.pk)
        reservations.reserve(cid, [8], "bob", now=now)

        info = reconciler.owner_of(cid, 8, now=now + timedelta(hours=1))

        assert info.status is TicketStatus.AVAILABLE
        assert info.user_id is None

    def test_owner_of_out_of_range(self, reconciler, competition):
        with pytest.raises(InvalidTicketNumberError):
            reconciler.owner_of(str(competition.pk), 0)
