"""
Domain-specific exception hierarchy for the salon booking engine.
"""


class SalonBookingError(Exception):
    """Base class for all application-level errors."""

    retryable = False


class BookingValidationError(SalonBookingError):
    """Raised when a required selection or contact field is missing or invalid."""


class SlotUnavailableError(SalonBookingError):
    """Raised when the chosen slot has no eligible, unbooked staff member."""

    retryable = True


class BackendError(SalonBookingError):
    """Raised when salon data cannot be fetched, parsed or submitted."""

    retryable = True


class InvalidTransitionError(SalonBookingError):
    """Raised when an event is not accepted at the current workflow step."""


class CommitInProgressError(SalonBookingError):
    """Raised when a step transition is attempted while a commit is in flight."""
