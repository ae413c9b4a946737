"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every mutating method is a
single atomic unit of work against the backing store.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from raffles.domain import (
    Competition,
    CompetitionId,
    DriftReport,
    Order,
    ReconcileReport,
    Ticket,
    TicketSelection,
)


class ClaimOutcome(Enum):
    CLAIMED = "claimed"
    UNAVAILABLE = "unavailable"
    LIMIT_EXCEEDED = "limit_exceeded"


@dataclass(frozen=True)
class ClaimResult:
    outcome: ClaimOutcome
    numbers: tuple[int, ...] = ()
    held: int = 0


class FinalizeOutcome(Enum):
    PURCHASED = "purchased"
    ALREADY_PURCHASED = "already_purchased"
    MISMATCHED = "mismatched"


@dataclass(frozen=True)
class FinalizeResult:
    outcome: FinalizeOutcome
    numbers: tuple[int, ...] = ()


class TicketStore(ABC):
    """Interface for ticket inventory persistence."""

    @abstractmethod
    def get_competition(self, competition_id: CompetitionId) -> Competition | None:
        """Return a competition by ID, or None if not found."""
        ...

    @abstractmethod
    def initialize(self, competition_id: CompetitionId, total_tickets: int) -> bool:
        """Create tickets 1..total_tickets as available.

        Returns False, creating nothing, if the competition already has tickets.
        """
        ...

    @abstractmethod
    def reset(self, competition_id: CompetitionId, total_tickets: int) -> None:
        """Delete and recreate the whole ticket set and zero tickets_sold."""
        ...

    @abstractmethod
    def list_tickets(self, competition_id: CompetitionId) -> list[Ticket]:
        """Return every ticket row, ordered by number, from one read."""
        ...

    @abstractmethod
    def get_ticket(self, competition_id: CompetitionId, number: int) -> Ticket | None:
        """Return a single ticket row, or None if it does not exist."""
        ...

    @abstractmethod
    def claim(
        self,
        competition_id: CompetitionId,
        selection: TicketSelection,
        holder_id: str,
        now: datetime,
        expires_at: datetime,
        max_per_user: int | None = None,
    ) -> ClaimResult:
        """Reserve every selected number for holder_id or none of them.

        With max_per_user set, the claim is refused when holder_id's purchased
        tickets and live holds plus the selection would exceed it. An
        UNAVAILABLE result carries the numbers that blocked the claim.
        """
        ...

    @abstractmethod
    def release(
        self,
        competition_id: CompetitionId,
        selection: TicketSelection,
        holder_id: str,
        now: datetime,
    ) -> int:
        """Return holder_id's reserved numbers to available. Returns the count."""
        ...

    @abstractmethod
    def finalize(
        self,
        competition_id: CompetitionId,
        selection: TicketSelection,
        holder_id: str,
        order_id: int,
        now: datetime,
    ) -> FinalizeResult:
        """Promote live holds to purchased, complete the order and bump tickets_sold."""
        ...

    @abstractmethod
    def sweep_expired(self, now: datetime) -> int:
        """Return every lapsed reservation to available. Returns the count."""
        ...

    @abstractmethod
    def rebuild_from_orders(
        self, competition_id: CompetitionId, now: datetime, expires_at: datetime
    ) -> ReconcileReport | None:
        """Overwrite the ticket projection from the competition's orders."""
        ...

    @abstractmethod
    def audit(self, competition_id: CompetitionId) -> DriftReport | None:
        """Compare purchased rows and tickets_sold against completed orders."""
        ...

    @abstractmethod
    def competition_ids(self) -> list[CompetitionId]:
        """Return the IDs of every competition that has tickets."""
        ...


class OrderLedger(ABC):
    """Interface for the order ledger."""

    @abstractmethod
    def get_order(self, order_id: int) -> Order | None:
        """Return an order by ID, or None if not found."""
        ...

    @abstractmethod
    def record_pending(
        self,
        order_id: int,
        competition_id: CompetitionId,
        user_id: str,
        selection: TicketSelection,
    ) -> Order | None:
        """Append a pending order.

        Recording the same order again returns it unchanged. Returns None if
        order_id is already recorded with different details.
        """
        ...

    @abstractmethod
    def mark_failed(self, order_id: int, now: datetime) -> tuple[Order, int] | None:
        """Fail a pending order and release its user's holds on its numbers.

        Returns the order and the number of tickets released.
        """
        ...
