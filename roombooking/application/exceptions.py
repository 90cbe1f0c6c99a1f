from __future__ import annotations

from typing import Any


class BookingError(RuntimeError):
    """Base for every error the booking engine reports to its callers."""

    code = "booking_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})


class NotFoundError(BookingError):
    """Room, booking, series or host does not exist."""

    code = "not_found"


class InvalidStateError(BookingError):
    """Transition not allowed from the booking's current status."""

    code = "invalid_state"


class NotAvailableError(BookingError):
    """Availability check found conflicting busy time."""

    code = "not_available"


class BookingValidationError(BookingError):
    """Bad duration, time range or recurrence rule."""

    code = "validation"


class ExternalSyncError(BookingError):
    """Calendar provider call failed."""

    code = "external_sync_failure"


class PersistenceVerificationError(BookingError):
    """A write reported success but the stored row does not reflect it."""

    code = "persistence_verification"
