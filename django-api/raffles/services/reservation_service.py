"""Reservation service - all-or-nothing holds on ticket numbers."""

import logging
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from django.utils import timezone

from raffles import conf
from raffles.domain import CompetitionId, Hold, HoldWindow
from raffles.domain.errors import TicketLimitExceededError, TicketsUnavailableError
from raffles.services.common import (
    load_competition,
    parse_competition_id,
    parse_selection,
    store_errors,
)
from raffles.stores.interfaces import ClaimOutcome, TicketStore

logger = logging.getLogger(__name__)


class ReservationService:
    """Service for reserving and releasing ticket numbers."""

    def __init__(self, store: TicketStore, hold_window: HoldWindow | None = None) -> None:
        self._store = store
        self._hold_window = hold_window

    @property
    def hold_window(self) -> HoldWindow:
        return self._hold_window or conf.hold_window()

    def reserve(
        self,
        competition_id: str | UUID | CompetitionId,
        ticket_numbers: Iterable[int],
        user_id: str | int,
        now: datetime | None = None,
    ) -> Hold:
        """Hold every requested number for user_id, or none of them.

        Lapsed holds count as available. No partial hold is ever left behind.

        Raises:
            InvalidCompetitionIdError: If the competition_id is not a valid UUID.
            CompetitionNotFoundError: If the competition does not exist.
            EmptyRequestError: If no numbers were requested.
            InvalidTicketNumberError: If a number is outside 1..total_tickets.
            TicketsUnavailableError: If any requested number is not free.
            TicketLimitExceededError: If the hold would take user_id past the
                competition's max_tickets_per_user.
            StoreFailureError: If the backing store fails.
        """
        cid = parse_competition_id(competition_id)
        competition = load_competition(self._store, cid)
        selection = parse_selection(ticket_numbers, competition.total_tickets)
        holder = str(user_id)
        now = now or timezone.now()
        expires_at = self.hold_window.expiry_from(now)

        with store_errors("reserve"):
            result = self._store.claim(
                cid, selection, holder, now, expires_at, competition.max_tickets_per_user
            )
        if result.outcome is ClaimOutcome.LIMIT_EXCEEDED:
            logger.warning(
                f"User {holder} holds {result.held} tickets in competition {cid}; "
                f"{len(selection)} more would exceed {competition.max_tickets_per_user}"
            )
            raise TicketLimitExceededError(competition.max_tickets_per_user, result.held)
        if result.outcome is ClaimOutcome.UNAVAILABLE:
            logger.warning(
                f"User {holder} could not reserve {list(selection)} in competition {cid}: "
                f"{list(result.numbers)} unavailable"
            )
            raise TicketsUnavailableError(list(result.numbers))

        logger.info(
            f"Reserved {list(selection)} in competition {cid} for user {holder} "
            f"until {expires_at.isoformat()}"
        )
        return Hold(
            competition_id=cid,
            user_id=holder,
            ticket_numbers=selection.numbers,
            expires_at=expires_at,
        )

    def release(
        self,
        competition_id: str | UUID | CompetitionId,
        ticket_numbers: Iterable[int],
        user_id: str | int,
        now: datetime | None = None,
    ) -> int:
        """Return the caller's reserved numbers to available.

        Numbers the caller does not hold are skipped, so retries are harmless.
        Returns the number of tickets released.
        """
        cid = parse_competition_id(competition_id)
        competition = load_competition(self._store, cid)
        selection = parse_selection(ticket_numbers, competition.total_tickets)
        holder = str(user_id)
        now = now or timezone.now()

        with store_errors("release"):
            released = self._store.release(cid, selection, holder, now)
        logger.info(
            f"Released {released} of {len(selection)} tickets in competition {cid} "
            f"for user {holder}"
        )
        return released
