"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in raffles/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from raffles.domain.value_objects import CompetitionId, hold_is_live


class TicketStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    PURCHASED = "purchased"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Competition:
    """The slice of competition metadata the allocation core consumes."""

    id: CompetitionId
    title: str
    total_tickets: int
    tickets_sold: int
    max_tickets_per_user: int | None = None


@dataclass(frozen=True)
class Ticket:
    """Domain representation of a single numbered ticket."""

    competition_id: CompetitionId
    number: int
    status: TicketStatus
    holder_id: str | None = None
    reserved_until: datetime | None = None
    order_id: int | None = None

    def logical(self, now: datetime) -> "Ticket":
        """Return the ticket as readers must see it at ``now``.

        Reserved rows whose hold has lapsed read as available even before the
        sweeper rewrites them.
        """
        if self.status is TicketStatus.RESERVED and not hold_is_live(self.reserved_until, now):
            return Ticket(
                competition_id=self.competition_id,
                number=self.number,
                status=TicketStatus.AVAILABLE,
            )
        return self


@dataclass(frozen=True)
class Hold:
    """A successful reservation."""

    competition_id: CompetitionId
    user_id: str
    ticket_numbers: tuple[int, ...]
    expires_at: datetime


@dataclass(frozen=True)
class TicketStatuses:
    """Snapshot of every ticket number bucketed by logical status."""

    available: list[int] = field(default_factory=list)
    reserved: list[int] = field(default_factory=list)
    purchased: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.available) + len(self.reserved) + len(self.purchased)


@dataclass(frozen=True)
class TicketStats:
    """Aggregate counts for one competition."""

    competition_id: CompetitionId
    total_tickets: int
    available: int
    reserved: int
    purchased: int
    tickets_sold: int

    @property
    def in_sync(self) -> bool:
        return self.purchased == self.tickets_sold


@dataclass(frozen=True)
class Order:
    """Ledger record of a buyer's purchase intent."""

    id: int
    competition_id: CompetitionId
    user_id: str
    ticket_numbers: tuple[int, ...]
    payment_status: PaymentStatus
    created_at: datetime
    completed_at: datetime | None = None


@dataclass(frozen=True)
class OwnershipInfo:
    """Who holds a ticket, for support and audit lookups."""

    competition_id: CompetitionId
    ticket_number: int
    status: TicketStatus
    user_id: str | None = None
    order_id: int | None = None
    purchase_date: datetime | None = None
    reserved_until: datetime | None = None


@dataclass(frozen=True)
class ReconcileReport:
    """Outcome of rebuilding a competition's tickets from its orders."""

    competition_id: CompetitionId
    purchased: int
    reserved: int
    available: int
    tickets_sold_before: int
    conflicts: tuple[int, ...] = ()
    out_of_range: tuple[int, ...] = ()


@dataclass(frozen=True)
class DriftReport:
    """Differences between the ticket projection and the order ledger."""

    competition_id: CompetitionId
    tickets_sold: int
    purchased_rows: int
    missing_purchases: tuple[int, ...] = ()
    unbacked_purchases: tuple[int, ...] = ()

    @property
    def has_drift(self) -> bool:
        return (
            self.tickets_sold != self.purchased_rows
            or bool(self.missing_purchases)
            or bool(self.unbacked_purchases)
        )
