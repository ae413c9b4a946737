"""Purchase service - turns live holds into purchased tickets."""

import logging
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from django.utils import timezone

from raffles.domain import CompetitionId, Order, PaymentStatus
from raffles.domain.errors import (
    DuplicateOrderError,
    HoldExpiredOrMismatchedError,
    OrderNotFoundError,
)
from raffles.services.common import (
    load_competition,
    parse_competition_id,
    parse_order_id,
    parse_selection,
    store_errors,
)
from raffles.stores.interfaces import FinalizeOutcome, OrderLedger, TicketStore

logger = logging.getLogger(__name__)


class PurchaseService:
    """Service for finalizing and failing checkouts."""

    def __init__(self, store: TicketStore, ledger: OrderLedger) -> None:
        self._store = store
        self._ledger = ledger

    def purchase(
        self,
        competition_id: str | UUID | CompetitionId,
        ticket_numbers: Iterable[int],
        user_id: str | int,
        order_id: int,
        now: datetime | None = None,
    ) -> bool:
        """Promote the user's live holds to purchased under order_id.

        The ticket flip, the order completion and the tickets_sold increment
        commit together. Repeating a successful call with the same order_id
        succeeds without counting the tickets again.

        Returns True if tickets were purchased by this call, False if the
        order had already been applied.

        Raises:
            InvalidOrderIdError: If order_id is not a positive integer.
            HoldExpiredOrMismatchedError: If any number is not held by user_id
                with a live hold at ``now``. Nothing is changed.
        """
        cid = parse_competition_id(competition_id)
        oid = parse_order_id(order_id)
        competition = load_competition(self._store, cid)
        selection = parse_selection(ticket_numbers, competition.total_tickets)
        holder = str(user_id)
        now = now or timezone.now()

        with store_errors("purchase"):
            result = self._store.finalize(cid, selection, holder, oid.value, now)

        if result.outcome is FinalizeOutcome.MISMATCHED:
            logger.warning(
                f"Purchase of {list(selection)} in competition {cid} by user {holder} "
                f"(order {oid.value}) rejected: {list(result.numbers)} not held"
            )
            raise HoldExpiredOrMismatchedError(list(result.numbers))
        if result.outcome is FinalizeOutcome.ALREADY_PURCHASED:
            logger.info(f"Order {oid.value} already applied to competition {cid}")
            return False

        logger.info(
            f"Purchased {list(selection)} in competition {cid} for user {holder} "
            f"(order {oid.value})"
        )
        return True

    def record_pending(
        self,
        competition_id: str | UUID | CompetitionId,
        ticket_numbers: Iterable[int],
        user_id: str | int,
        order_id: int,
    ) -> Order:
        """Append a pending order for a checkout that is awaiting payment.

        Recording the same order twice is harmless.

        Raises:
            DuplicateOrderError: If order_id is already recorded for another
                competition, user, ticket set or payment status.
        """
        cid = parse_competition_id(competition_id)
        oid = parse_order_id(order_id)
        competition = load_competition(self._store, cid)
        selection = parse_selection(ticket_numbers, competition.total_tickets)
        with store_errors("record_pending"):
            order = self._ledger.record_pending(oid.value, cid, str(user_id), selection)
        if order is None:
            logger.warning(f"Order {oid.value} already recorded with different details")
            raise DuplicateOrderError(oid.value)
        logger.info(f"Recorded pending order {oid.value} for competition {cid}")
        return order

    def fail(self, order_id: int, now: datetime | None = None) -> int:
        """Mark a pending order failed and release its user's holds.

        Returns the number of tickets released.

        Raises:
            OrderNotFoundError: If the order is not in the ledger.
        """
        oid = parse_order_id(order_id)
        now = now or timezone.now()
        with store_errors("fail_order"):
            outcome = self._ledger.mark_failed(oid.value, now)
        if outcome is None:
            raise OrderNotFoundError(oid.value)
        order, released = outcome
        if order.payment_status is not PaymentStatus.FAILED:
            logger.warning(
                f"Order {oid.value} is {order.payment_status.value}; not marking failed"
            )
            return 0
        logger.info(f"Order {oid.value} failed; released {released} tickets")
        return released
