"""Error taxonomy of the booking engine.

Every error carries a machine readable ``code`` and a human readable
message; the API layer renders both. ``ExternalAdapterFailure`` is the only
recoverable kind: it never leaves the PMS adapter.
"""

from __future__ import annotations


class BookingError(Exception):
    """Base class for errors surfaced to callers of the booking engine."""

    code = "BOOKING_ERROR"
    default_message = "Booking request failed."

    def __init__(self, message: str | None = None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_dict(self) -> dict:
        data = {"code": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class NotFound(BookingError):
    code = "NOT_FOUND"
    default_message = "Resource not found."


class InvalidDates(BookingError):
    code = "INVALID_DATES"
    default_message = "Invalid stay dates."


class RuleViolation(BookingError):
    code = "RULE_VIOLATION"
    default_message = "The stay does not satisfy the property rules."


class Unavailable(BookingError):
    code = "UNAVAILABLE"
    default_message = "Selected dates are not available."


class ExternalUnavailable(Unavailable):
    code = "EXTERNAL_UNAVAILABLE"
    default_message = "Selected dates are not available."


class InvalidStateTransition(BookingError):
    code = "INVALID_STATE_TRANSITION"
    default_message = "Reservation cannot change to the requested status."


class QuoteExpired(BookingError):
    code = "QUOTE_EXPIRED"
    default_message = "Quote has expired."


class QuoteAlreadyConverted(BookingError):
    code = "QUOTE_ALREADY_CONVERTED"
    default_message = "Quote has already been converted into a reservation."


class ExternalAdapterFailure(Exception):
    """PMS unreachable, timed out or answered with an unusable error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
