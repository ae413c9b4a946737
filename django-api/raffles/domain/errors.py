"""Domain error codes for the raffles module."""

from dataclasses import dataclass, field
from enum import Enum


class ErrorKind(Enum):
    """How callers should treat an error."""

    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_INPUT = "INVALID_INPUT"
    STORE_FAILURE = "STORE_FAILURE"


class ErrorCode(Enum):
    """Domain error codes."""

    COMPETITION_NOT_FOUND = "COMPETITION_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    INVALID_COMPETITION_ID = "INVALID_COMPETITION_ID"
    INVALID_TICKET_NUMBER = "INVALID_TICKET_NUMBER"
    INVALID_ORDER_ID = "INVALID_ORDER_ID"
    EMPTY_REQUEST = "EMPTY_REQUEST"
    ALREADY_INITIALIZED = "ALREADY_INITIALIZED"
    TICKETS_UNAVAILABLE = "TICKETS_UNAVAILABLE"
    HOLD_EXPIRED_OR_MISMATCHED = "HOLD_EXPIRED_OR_MISMATCHED"
    TICKET_LIMIT_EXCEEDED = "TICKET_LIMIT_EXCEEDED"
    DUPLICATE_ORDER = "DUPLICATE_ORDER"
    STORE_FAILURE = "STORE_FAILURE"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str
    kind: ErrorKind = field(default=ErrorKind.INVALID_INPUT)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class CompetitionNotFoundError(DomainError):
    """Raised when a competition does not exist."""

    def __init__(self, competition_id: str) -> None:
        super().__init__(
            code=ErrorCode.COMPETITION_NOT_FOUND,
            message="Competition not found",
            kind=ErrorKind.NOT_FOUND,
        )
        self.competition_id = competition_id


class OrderNotFoundError(DomainError):
    """Raised when an order is not in the ledger."""

    def __init__(self, order_id: int) -> None:
        super().__init__(
            code=ErrorCode.ORDER_NOT_FOUND,
            message="Order not found",
            kind=ErrorKind.NOT_FOUND,
        )
        self.order_id = order_id


class InvalidCompetitionIdError(DomainError):
    """Raised when a competition ID is invalid."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_COMPETITION_ID,
            message="Invalid competition ID format",
            kind=ErrorKind.INVALID_INPUT,
        )


class InvalidTicketNumberError(DomainError):
    """Raised when ticket numbers fall outside 1..total_tickets."""

    def __init__(self, numbers: list[int]) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TICKET_NUMBER,
            message="Ticket numbers out of range",
            kind=ErrorKind.INVALID_INPUT,
        )
        self.numbers = numbers


class InvalidOrderIdError(DomainError):
    """Raised when an order ID is not a positive integer."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ORDER_ID,
            message="Invalid order ID",
            kind=ErrorKind.INVALID_INPUT,
        )


class EmptyRequestError(DomainError):
    """Raised when no ticket numbers were requested."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.EMPTY_REQUEST,
            message="No ticket numbers requested",
            kind=ErrorKind.INVALID_INPUT,
        )


class AlreadyInitializedError(DomainError):
    """Raised when a competition already has ticket records."""

    def __init__(self, competition_id: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_INITIALIZED,
            message="Competition tickets already initialized",
            kind=ErrorKind.CONFLICT,
        )
        self.competition_id = competition_id


class TicketsUnavailableError(DomainError):
    """Raised when one or more requested tickets are not free."""

    def __init__(self, numbers: list[int]) -> None:
        super().__init__(
            code=ErrorCode.TICKETS_UNAVAILABLE,
            message="One or more tickets are no longer available",
            kind=ErrorKind.CONFLICT,
        )
        self.numbers = numbers


class HoldExpiredOrMismatchedError(DomainError):
    """Raised when a purchase does not match a live hold by the buyer."""

    def __init__(self, numbers: list[int]) -> None:
        super().__init__(
            code=ErrorCode.HOLD_EXPIRED_OR_MISMATCHED,
            message="Reservation expired or held by another user",
            kind=ErrorKind.CONFLICT,
        )
        self.numbers = numbers


class TicketLimitExceededError(DomainError):
    """Raised when a reservation would take a user past the competition's limit."""

    def __init__(self, limit: int, held: int) -> None:
        super().__init__(
            code=ErrorCode.TICKET_LIMIT_EXCEEDED,
            message=f"You can only hold up to {limit} tickets for this competition",
            kind=ErrorKind.CONFLICT,
        )
        self.limit = limit
        self.held = held


class DuplicateOrderError(DomainError):
    """Raised when an order ID is already recorded with different details."""

    def __init__(self, order_id: int) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_ORDER,
            message="Order already exists",
            kind=ErrorKind.CONFLICT,
        )
        self.order_id = order_id


class StoreFailureError(DomainError):
    """Raised when the backing store fails."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            code=ErrorCode.STORE_FAILURE,
            message="Ticket store unavailable",
            kind=ErrorKind.STORE_FAILURE,
        )
        self.operation = operation
