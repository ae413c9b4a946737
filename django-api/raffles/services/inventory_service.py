"""Inventory service - ticket set lifecycle and logical status reads.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

import logging
from datetime import datetime
from uuid import UUID

from django.utils import timezone

from raffles.domain import CompetitionId, TicketStatus, TicketStatuses
from raffles.domain.errors import AlreadyInitializedError, InvalidTicketNumberError
from raffles.services.common import (
    load_competition,
    parse_competition_id,
    store_errors,
)
from raffles.stores.interfaces import TicketStore

logger = logging.getLogger(__name__)


class InventoryService:
    """Service for the per-competition ticket inventory."""

    def __init__(self, store: TicketStore) -> None:
        self._store = store

    def initialize(self, competition_id: str | UUID | CompetitionId) -> int:
        """Create every ticket number for a competition as available.

        Returns the number of tickets created.

        Raises:
            InvalidCompetitionIdError: If the competition_id is not a valid UUID.
            CompetitionNotFoundError: If the competition does not exist.
            AlreadyInitializedError: If tickets already exist for the competition.
        """
        cid = parse_competition_id(competition_id)
        competition = load_competition(self._store, cid)
        with store_errors("initialize"):
            created = self._store.initialize(cid, competition.total_tickets)
        if not created:
            raise AlreadyInitializedError(str(cid))
        logger.info(f"Initialized {competition.total_tickets} tickets for competition {cid}")
        return competition.total_tickets

    def reset(self, competition_id: str | UUID | CompetitionId) -> int:
        """Delete and recreate a competition's tickets, all available."""
        cid = parse_competition_id(competition_id)
        competition = load_competition(self._store, cid)
        with store_errors("reset"):
            self._store.reset(cid, competition.total_tickets)
        logger.warning(f"Reset all {competition.total_tickets} tickets for competition {cid}")
        return competition.total_tickets

    def get_statuses(
        self, competition_id: str | UUID | CompetitionId, now: datetime | None = None
    ) -> TicketStatuses:
        """Return every ticket number bucketed by its logical status."""
        cid = parse_competition_id(competition_id)
        load_competition(self._store, cid)
        now = now or timezone.now()
        with store_errors("get_statuses"):
            tickets = self._store.list_tickets(cid)

        buckets: dict[TicketStatus, list[int]] = {status: [] for status in TicketStatus}
        for ticket in tickets:
            buckets[ticket.logical(now).status].append(ticket.number)
        return TicketStatuses(
            available=buckets[TicketStatus.AVAILABLE],
            reserved=buckets[TicketStatus.RESERVED],
            purchased=buckets[TicketStatus.PURCHASED],
        )

    def is_available(
        self,
        competition_id: str | UUID | CompetitionId,
        ticket_number: int,
        now: datetime | None = None,
    ) -> bool:
        """Return whether a single ticket can be reserved at ``now``.

        Raises:
            InvalidTicketNumberError: If the number is outside 1..total_tickets.
        """
        cid = parse_competition_id(competition_id)
        competition = load_competition(self._store, cid)
        if not 1 <= ticket_number <= competition.total_tickets:
            raise InvalidTicketNumberError([ticket_number])
        now = now or timezone.now()
        with store_errors("is_available"):
            ticket = self._store.get_ticket(cid, ticket_number)
        if ticket is None:
            return False
        return ticket.logical(now).status is TicketStatus.AVAILABLE
