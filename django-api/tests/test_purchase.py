"""Tests for PurchaseService.

Run with: pytest tests/test_purchase.py -v
"""

from datetime import timedelta

import pytest

from raffles import models as orm
from raffles.domain.errors import (
    DuplicateOrderError,
    ErrorKind,
    HoldExpiredOrMismatchedError,
    InvalidOrderIdError,
    OrderNotFoundError,
)
from tests.conftest import snapshot, ticket


@pytest.mark.django_db
class TestPurchase:
    """Tests for finalizing held tickets."""

    def test_purchase_links_order_and_counts_sale(
        self, reservations, purchases, reconciler, competition, now
    ):
        cid = str(competition.pk)
        reservations.reserve(cid, [7], "alice", now=now)

        assert purchases.purchase(cid, [7], "alice", order_id=77, now=now) is True

        row = ticket(competition, 7)
        assert row.status == "purchased"
        assert row.order_id == 77
        assert row.holder_id == "alice"
        assert row.reserved_until is None
        competition.refresh_from_db()
        assert competition.tickets_sold == 1

        owner = reconciler.owner_of(cid, 7, now=now)
        assert owner.user_id == "alice"
        assert owner.order_id == 77
        assert owner.purchase_date == now

    def test_purchase_completes_ledger_order(self, reservations, purchases, competition, now):
        cid = str(competition.pk)
        reservations.reserve(cid, [1, 2], "alice", now=now)
        purchases.purchase(cid, [2, 1], "alice", order_id=12, now=now)

        order = orm.Order.objects.get(pk=12)
        assert order.payment_status == "completed"
        assert order.user_id == "alice"
        assert order.ticket_numbers == [1, 2]
        assert order.completed_at == now

    def test_purchase_completes_existing_pending_order(
        self, reservations, purchases, competition, now
    ):
        cid = str(competition.pk)
        reservations.reserve(cid, [4], "alice", now=now)
        purchases.record_pending(cid, [4], "alice", order_id=40)

        purchases.purchase(cid, [4], "alice", order_id=40, now=now)

        assert orm.Order.objects.get(pk=40).payment_status == "completed"

    def test_wrong_user_is_rejected(self, reservations, purchases, competition, now):
        cid = str(competition.pk)
        reservations.reserve(cid, [9], "alice", now=now)
        before = snapshot(competition)

        with pytest.raises(HoldExpiredOrMismatchedError) as exc_info:
            purchases.purchase(cid, [9], "bob", order_id=88, now=now)

        assert exc_info.value.numbers == [9]
        assert snapshot(competition) == before
        row = ticket(competition, 9)
        assert row.status == "reserved"
        assert row.holder_id == "alice"
        assert not orm.Order.objects.filter(pk=88).exists()

    def test_partial_ownership_mutates_nothing(self, reservations, purchases, competition, now):
        cid = str(competition.pk)
        reservations.reserve(cid, [1, 2], "alice", now=now)
        reservations.reserve(cid, [3], "bob", now=now)
        before = snapshot(competition)

        with pytest.raises(HoldExpiredOrMismatchedError) as exc_info:
            purchases.purchase(cid, [1, 2, 3], "alice", order_id=5, now=now)

        assert exc_info.value.numbers == [3]
        assert snapshot(competition) == before

    def test_unreserved_ticket_is_rejected(self, purchases, competition, now):
        with pytest.raises(HoldExpiredOrMismatchedError):
            purchases.purchase(str(competition.pk), [1], "alice", order_id=1, now=now)

    def test_expired_hold_is_rejected(self, reservations, purchases, competition, now):
        cid = str(competition.pk)
        reservations.reserve(cid, [5], "alice", now=now)

        with pytest.raises(HoldExpiredOrMismatchedError):
            purchases.purchase(cid, [5], "alice", order_id=6, now=now + timedelta(minutes=30))
        competition.refresh_from_db()
        assert competition.tickets_sold == 0

    def test_purchase_just_before_expiry_wins(self, reservations, purchases, sweeper, competition, now):
        """A hold still live at purchase time beats a sweep that fires right after."""
        cid = str(competition.pk)
        reservations.reserve(cid, [5], "alice", now=now)
        almost = now + timedelta(minutes=30) - timedelta(microseconds=1)

        purchases.purchase(cid, [5], "alice", order_id=6, now=almost)
        assert sweeper.sweep_expired(now + timedelta(minutes=30)) == 0
        assert ticket(competition, 5).status == "purchased"

    def test_retry_with_same_order_is_idempotent(
        self, reservations, purchases, competition, now
    ):
        cid = str(competition.pk)
        reservations.reserve(cid, [1, 2], "alice", now=now)

        assert purchases.purchase(cid, [1, 2], "alice", order_id=21, now=now) is True
        assert purchases.purchase(cid, [1, 2], "alice", order_id=21, now=now) is False

        competition.refresh_from_db()
        assert competition.tickets_sold == 2

    def test_retry_with_other_order_is_rejected(
        self, reservations, purchases, competition, now
    ):
        cid = str(competition.pk)
        reservations.reserve(cid, [1], "alice", now=now)
        purchases.purchase(cid, [1], "alice", order_id=21, now=now)

        with pytest.raises(HoldExpiredOrMismatchedError):
            purchases.purchase(cid, [1], "alice", order_id=22, now=now)

    def test_order_of_other_user_is_rejected(self, reservations, purchases, competition, now):
        cid = str(competition.pk)
        purchases.record_pending(cid, [2], "bob", order_id=30)
        reservations.reserve(cid, [2], "alice", now=now)

        with pytest.raises(HoldExpiredOrMismatchedError):
            purchases.purchase(cid, [2], "alice", order_id=30, now=now)
        assert ticket(competition, 2).status == "reserved"

    def test_counter_matches_purchased_rows(self, reservations, purchases, competition, now):
        cid = str(competition.pk)
        for order_id, (user, numbers) in enumerate(
            [("alice", [1, 2]), ("bob", [3]), ("carol", [4, 5, 6])], start=1
        ):
            reservations.reserve(cid, numbers, user, now=now)
            purchases.purchase(cid, numbers, user, order_id=order_id, now=now)

        competition.refresh_from_db()
        purchased = orm.Ticket.objects.filter(competition=competition, status="purchased").count()
        assert competition.tickets_sold == purchased == 6

    def test_invalid_order_id(self, purchases, competition, now):
        with pytest.raises(InvalidOrderIdError):
            purchases.purchase(str(competition.pk), [1], "alice", order_id=0, now=now)


@pytest.mark.django_db
class TestFailOrder:
    """Tests for failed payments."""

    def test_fail_releases_holds(self, reservations, purchases, competition, now):
        cid = str(competition.pk)
        reservations.reserve(cid, [3, 4], "alice", now=now)
        purchases.record_pending(cid, [3, 4], "alice", order_id=50)

        assert purchases.fail(50) == 2

        assert orm.Order.objects.get(pk=50).payment_status == "failed"
        assert ticket(competition, 3).status == "available"

    def test_fail_stamps_released_tickets(self, reservations, purchases, competition, now):
        cid = str(competition.pk)
        reservations.reserve(cid, [6], "alice", now=now)
        purchases.record_pending(cid, [6], "alice", order_id=52)
        later = now + timedelta(minutes=10)

        purchases.fail(52, now=later)

        assert ticket(competition, 6).updated_at == later

    def test_fail_ignores_completed_order(self, reservations, purchases, competition, now):
        cid = str(competition.pk)
        reservations.reserve(cid, [3], "alice", now=now)
        purchases.purchase(cid, [3], "alice", order_id=51, now=now)

        assert purchases.fail(51) == 0
        assert orm.Order.objects.get(pk=51).payment_status == "completed"
        assert ticket(competition, 3).status == "purchased"

    def test_fail_unknown_order(self, purchases, db):
        with pytest.raises(OrderNotFoundError):
            purchases.fail(999)


@pytest.mark.django_db
class TestRecordPending:
    """Tests for appending pending orders to the ledger."""

    def test_records_pending_order(self, purchases, competition):
        order = purchases.record_pending(str(competition.pk), [2, 1], "alice", order_id=60)

        assert order.ticket_numbers == (1, 2)
        assert orm.Order.objects.get(pk=60).payment_status == "pending"

    def test_same_order_twice_is_harmless(self, purchases, competition):
        cid = str(competition.pk)
        first = purchases.record_pending(cid, [1, 2], "alice", order_id=61)

        again = purchases.record_pending(cid, [2, 1], "alice", order_id=61)

        assert again == first
        assert orm.Order.objects.filter(pk=61).count() == 1

    def test_reused_order_id_is_a_conflict(self, purchases, competition):
        cid = str(competition.pk)
        purchases.record_pending(cid, [1], "alice", order_id=62)

        with pytest.raises(DuplicateOrderError) as exc_info:
            purchases.record_pending(cid, [1], "bob", order_id=62)

        assert exc_info.value.kind is ErrorKind.CONFLICT
        assert orm.Order.objects.get(pk=62).user_id == "alice"

    def test_completed_order_id_cannot_be_recorded_again(
        self, reservations, purchases, competition, now
    ):
        cid = str(competition.pk)
        reservations.reserve(cid, [3], "alice", now=now)
        purchases.purchase(cid, [3], "alice", order_id=63, now=now)

        with pytest.raises(DuplicateOrderError):
            purchases.record_pending(cid, [3], "alice", order_id=63)
