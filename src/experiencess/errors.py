"""Error taxonomy for the booking core.

Only transport and structured supplier failures are exceptions. Domain
negatives (canCommit=false, REJECTED after commit, payment declines) are
returned as outcome values by the modules that produce them.
"""

from __future__ import annotations

from typing import Any


class BookingCoreError(Exception):
    """Base class for errors raised by the booking core."""


class TransportError(BookingCoreError):
    """Network failure or non-2xx response without a structured error body."""

    def __init__(self, message: str = "Request to booking provider failed", *, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class SupplierApiError(BookingCoreError):
    """Structured error returned by the supplier API. Message is passed through verbatim."""

    def __init__(self, message: str, *, status_code: int | None = None, errors: list[dict[str, Any]] | None = None):
        self.status_code = status_code
        self.errors = errors or []
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404 or "not found" in str(self).lower()


class BookingNotFoundError(BookingCoreError):
    """Booking does not exist (or supplier returned null for it)."""

    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking not found: {booking_id}")


class ConfigurationInvalid(BookingCoreError):
    """Availability options/pricing were applied but the supplier reports isValid=false."""

    def __init__(self, availability_id: str, violations: list | None = None, detail: Any = None):
        self.availability_id = availability_id
        self.violations = violations or []
        self.detail = detail
        message = "Availability configuration is not valid"
        if self.violations:
            message += ": " + "; ".join(v.message for v in self.violations)
        super().__init__(message)


class BookingNotReadyError(BookingCoreError):
    """Payment or commit requested while the booking still has unanswered required questions."""


class InvalidTransitionError(BookingCoreError):
    """Checkout state machine received an event that is not valid in the current step."""


class ActionInFlightError(BookingCoreError):
    """The same checkout action was started again before its previous call returned."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Action already in progress: {action}")
