"""Domain primitives that enforce validity at creation time."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Self
from uuid import UUID


@dataclass(frozen=True)
class CompetitionId:
    """Unique identifier for a Competition."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TicketNumber:
    """A ticket number. Numbering starts at 1."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError("Ticket number must be an integer")
        if self.value < 1:
            raise ValueError("Ticket number must be at least 1")


@dataclass(frozen=True)
class TicketSelection:
    """Ordered, de-duplicated, non-empty set of ticket numbers."""

    numbers: tuple[int, ...]

    def __post_init__(self) -> None:
        if not self.numbers:
            raise ValueError("Ticket selection cannot be empty")
        for number in self.numbers:
            TicketNumber(number)

    @classmethod
    def of(cls, numbers: Iterable[int]) -> Self:
        return cls(numbers=tuple(sorted(set(numbers))))

    def out_of_range(self, total_tickets: int) -> list[int]:
        return [n for n in self.numbers if n > total_tickets]

    def __len__(self) -> int:
        return len(self.numbers)

    def __iter__(self):
        return iter(self.numbers)


@dataclass(frozen=True)
class OrderId:
    """Ledger identifier for an order."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError("Order id must be an integer")
        if self.value < 1:
            raise ValueError("Order id must be positive")


@dataclass(frozen=True)
class HoldWindow:
    """How long a reservation holds its tickets."""

    duration: timedelta = timedelta(minutes=30)

    def __post_init__(self) -> None:
        if self.duration <= timedelta(0):
            raise ValueError("Hold window must be positive")

    @classmethod
    def minutes(cls, value: int) -> Self:
        return cls(duration=timedelta(minutes=value))

    def expiry_from(self, now: datetime) -> datetime:
        return now + self.duration


def hold_is_live(reserved_until: datetime | None, now: datetime) -> bool:
    """Single expiry comparator shared by reads, reserve, purchase and sweep.

    A hold is live strictly before its expiry; at or after it the ticket is
    logically available.
    """
    return reserved_until is not None and reserved_until > now
