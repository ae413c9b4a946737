"""Input parsing and error mapping shared by the services."""

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from uuid import UUID

from django.db import DatabaseError

from raffles.domain import Competition, CompetitionId, OrderId, TicketSelection
from raffles.domain.errors import (
    CompetitionNotFoundError,
    EmptyRequestError,
    InvalidCompetitionIdError,
    InvalidOrderIdError,
    InvalidTicketNumberError,
    StoreFailureError,
)
from raffles.stores.interfaces import TicketStore

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Surface backing store failures as StoreFailureError."""
    try:
        yield
    except DatabaseError as exc:
        logger.error(f"Ticket store failure during {operation}: {exc}")
        raise StoreFailureError(operation) from exc


def parse_competition_id(value: str | UUID | CompetitionId) -> CompetitionId:
    if isinstance(value, CompetitionId):
        return value
    if isinstance(value, UUID):
        return CompetitionId(value)
    try:
        return CompetitionId.from_string(str(value))
    except ValueError:
        raise InvalidCompetitionIdError() from None


def parse_order_id(value: int) -> OrderId:
    try:
        return OrderId(value)
    except ValueError:
        raise InvalidOrderIdError() from None


def parse_selection(numbers: Iterable[int], total_tickets: int) -> TicketSelection:
    """Validate requested numbers against 1..total_tickets before any mutation.

    Raises:
        EmptyRequestError: If no numbers were given.
        InvalidTicketNumberError: If any number is not an integer in range.
    """
    numbers = list(numbers)
    if not numbers:
        raise EmptyRequestError()
    try:
        selection = TicketSelection.of(numbers)
    except (TypeError, ValueError):
        bad = [n for n in numbers if not isinstance(n, int) or isinstance(n, bool) or n < 1]
        raise InvalidTicketNumberError(bad) from None
    out_of_range = selection.out_of_range(total_tickets)
    if out_of_range:
        raise InvalidTicketNumberError(out_of_range)
    return selection


def load_competition(store: TicketStore, competition_id: CompetitionId) -> Competition:
    with store_errors("get_competition"):
        competition = store.get_competition(competition_id)
    if competition is None:
        raise CompetitionNotFoundError(str(competition_id))
    return competition
