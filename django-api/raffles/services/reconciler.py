"""Reconciler - repairs drift between the order ledger and ticket rows.

Reconciliation is an explicit repair step (admin-triggered or scheduled);
nothing on the request path calls it.
"""

import logging
from datetime import datetime
from uuid import UUID

from django.utils import timezone

from raffles import conf
from raffles.domain import (
    CompetitionId,
    DriftReport,
    HoldWindow,
    OwnershipInfo,
    ReconcileReport,
    TicketStats,
    TicketStatus,
)
from raffles.domain.errors import (
    CompetitionNotFoundError,
    InvalidTicketNumberError,
)
from raffles.services.common import load_competition, parse_competition_id, store_errors
from raffles.stores.interfaces import OrderLedger, TicketStore

logger = logging.getLogger(__name__)


class Reconciler:
    """Service for ledger repair, audits and ownership lookups."""

    def __init__(
        self,
        store: TicketStore,
        ledger: OrderLedger,
        hold_window: HoldWindow | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._hold_window = hold_window

    def reconcile(
        self, competition_id: str | UUID | CompetitionId, now: datetime | None = None
    ) -> ReconcileReport:
        """Rebuild a competition's ticket statuses strictly from its orders.

        Completed orders become purchased, pending orders become reserved with
        a fresh hold window, and tickets_sold is set to the purchased count.
        """
        cid = parse_competition_id(competition_id)
        now = now or timezone.now()
        expires_at = (self._hold_window or conf.hold_window()).expiry_from(now)
        with store_errors("reconcile"):
            report = self._store.rebuild_from_orders(cid, now, expires_at)
        if report is None:
            raise CompetitionNotFoundError(str(cid))

        if report.conflicts:
            logger.warning(
                f"Competition {cid}: numbers claimed by more than one order {list(report.conflicts)}"
            )
        if report.out_of_range:
            logger.warning(
                f"Competition {cid}: orders reference out-of-range numbers "
                f"{list(report.out_of_range)}"
            )
        if report.tickets_sold_before != report.purchased:
            logger.warning(
                f"Competition {cid}: tickets_sold corrected from "
                f"{report.tickets_sold_before} to {report.purchased}"
            )
        logger.info(
            f"Reconciled competition {cid}: {report.purchased} purchased, "
            f"{report.reserved} reserved, {report.available} available"
        )
        return report

    def reconcile_all(self, now: datetime | None = None) -> list[ReconcileReport]:
        """Reconcile every competition, skipping the ones that fail."""
        with store_errors("competition_ids"):
            competition_ids = self._store.competition_ids()
        reports = []
        for cid in competition_ids:
            try:
                reports.append(self.reconcile(cid, now=now))
            except Exception:
                logger.exception(f"Reconciliation of competition {cid} failed; skipping")
        return reports

    def audit(self, competition_id: str | UUID | CompetitionId) -> DriftReport:
        """Report drift between purchased tickets, tickets_sold and the ledger."""
        cid = parse_competition_id(competition_id)
        with store_errors("audit"):
            report = self._store.audit(cid)
        if report is None:
            raise CompetitionNotFoundError(str(cid))
        if report.has_drift:
            logger.warning(
                f"Competition {cid} drifted: tickets_sold={report.tickets_sold}, "
                f"purchased_rows={report.purchased_rows}, "
                f"missing={list(report.missing_purchases)}, "
                f"unbacked={list(report.unbacked_purchases)}"
            )
        return report

    def stats(
        self, competition_id: str | UUID | CompetitionId, now: datetime | None = None
    ) -> TicketStats:
        """Return aggregate ticket counts for a competition."""
        cid = parse_competition_id(competition_id)
        competition = load_competition(self._store, cid)
        now = now or timezone.now()
        with store_errors("stats"):
            tickets = self._store.list_tickets(cid)
        counts = {status: 0 for status in TicketStatus}
        for ticket in tickets:
            counts[ticket.logical(now).status] += 1
        return TicketStats(
            competition_id=cid,
            total_tickets=competition.total_tickets,
            available=counts[TicketStatus.AVAILABLE],
            reserved=counts[TicketStatus.RESERVED],
            purchased=counts[TicketStatus.PURCHASED],
            tickets_sold=competition.tickets_sold,
        )

    def owner_of(
        self,
        competition_id: str | UUID | CompetitionId,
        ticket_number: int,
        now: datetime | None = None,
    ) -> OwnershipInfo:
        """Look up who holds a ticket and under which order."""
        cid = parse_competition_id(competition_id)
        competition = load_competition(self._store, cid)
        if not 1 <= ticket_number <= competition.total_tickets:
            raise InvalidTicketNumberError([ticket_number])
        now = now or timezone.now()

        with store_errors("owner_of"):
            ticket = self._store.get_ticket(cid, ticket_number)
            order = (
                self._ledger.get_order(ticket.order_id)
                if ticket is not None and ticket.order_id is not None
                else None
            )
        if ticket is None:
            return OwnershipInfo(
                competition_id=cid, ticket_number=ticket_number, status=TicketStatus.AVAILABLE
            )

        ticket = ticket.logical(now)
        return OwnershipInfo(
            competition_id=cid,
            ticket_number=ticket_number,
            status=ticket.status,
            user_id=ticket.holder_id,
            order_id=ticket.order_id,
            purchase_date=(order.completed_at or order.created_at) if order else None,
            reserved_until=ticket.reserved_until,
        )
