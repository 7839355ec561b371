"""Error kinds raised by the billing and compliance core.

Services raise these instead of transport exceptions; the HTTP layer maps
each kind onto a response code in :mod:`careflow.backend.src.main`.
"""

from __future__ import annotations


class CareflowError(Exception):
    """Base class for recoverable, caller-facing domain errors."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(CareflowError):
    """Raised when a referenced entity does not exist."""

    kind = "not_found"


class InvalidState(CareflowError):
    """Raised when an operation is illegal for the entity's lifecycle state."""

    kind = "invalid_state"


class InvalidLineItem(CareflowError):
    """Raised when a line item fails arithmetic validation."""

    kind = "invalid_line_item"

    def __init__(self, message: str, index: int | None = None) -> None:
        super().__init__(message)
        self.index = index


class InvalidAppointment(CareflowError):
    """Raised when an appointment would end before it starts."""

    kind = "invalid_appointment"


class ConcurrencyConflict(CareflowError):
    """Raised when invoice numbering keeps colliding with concurrent writers."""

    kind = "concurrency_conflict"


class NoOccurrencesGenerated(Exception):
    """Signals that a recurrence pattern is not recognised.

    This is an outcome rather than a failure: the template appointment is
    kept, only the series is skipped.
    """

    def __init__(self, pattern: str | None) -> None:
        super().__init__(f"Unrecognised recurring pattern: {pattern!r}")
        self.pattern = pattern


__all__ = [
    "CareflowError",
    "ConcurrencyConflict",
    "InvalidAppointment",
    "InvalidLineItem",
    "InvalidState",
    "NoOccurrencesGenerated",
    "NotFound",
]
