"""
Domain-specific exception hierarchy for the booking engine.
"""


class BookingEngineError(Exception):
    """Base class for all application-level errors."""


class ValidationError(BookingEngineError):
    """Raised when a request is invalid regardless of timing or contention."""


class AppointmentTypeNotFound(ValidationError):
    """Raised when an appointment type id is not in the catalog."""


class WindowPolicyViolation(BookingEngineError):
    """Raised when a start time is too soon or too far in advance."""


class SlotNoLongerAvailable(BookingEngineError):
    """Raised when a conflict is detected only at commit time."""


class SettingsUnavailable(BookingEngineError):
    """Raised when booking is disabled or the provider is misconfigured."""


class BookingNotFound(BookingEngineError):
    """Raised when a booking id is unknown to the ledger."""


class InvalidStatusTransition(BookingEngineError):
    """Raised when a status change is not allowed by the booking lifecycle."""
