"""
Closeout domain errors.

Services raise these; API routes translate them to HTTP responses.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from src.models.ledger import EventClosure


class CloseoutError(Exception):
    """Base class for all closeout errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CloseoutError):
    """Malformed operator input. Nothing was written."""


class ConfigurationError(CloseoutError):
    """Commission terms are structurally ambiguous for their declared type."""


class InconsistentCurrencyError(CloseoutError):
    """Commission rows of one event carry different currency tags."""

    def __init__(self, event_id: int, expected: str, found: str):
        super().__init__(
            f"Event {event_id} mixes currencies: expected {expected}, found {found}"
        )
        self.event_id = event_id
        self.expected = expected
        self.found = found


class ClosedEventError(CloseoutError):
    """A mutation was attempted on an event that is already closed."""

    def __init__(self, event_id: int):
        super().__init__(f"Event {event_id} is already closed")
        self.event_id = event_id


class AlreadyClosedError(CloseoutError):
    """
    Finalize was called for an event that already has a closure.

    Carries the existing closure so callers can show it instead of failing.
    """

    def __init__(self, event_id: int, closure: Optional["EventClosure"] = None):
        super().__init__(f"Event {event_id} is already closed")
        self.event_id = event_id
        self.closure = closure


class EventNotFoundError(CloseoutError):
    def __init__(self, event_id: int):
        super().__init__(f"Event {event_id} not found")
        self.event_id = event_id


class PromoterNotAssignedError(CloseoutError):
    def __init__(self, event_id: int, promoter_id: int):
        super().__init__(f"Promoter {promoter_id} is not assigned to event {event_id}")
        self.event_id = event_id
        self.promoter_id = promoter_id
