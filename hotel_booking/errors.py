"""
Error taxonomy for the booking core.

Every error carries a stable ``code`` that routes expose in their JSON error
bodies. Races on a booking's status are not errors: guarded transitions report
them as a NOOP ``TransitionOutcome`` instead of raising.
"""

from __future__ import annotations


class BookingServiceError(Exception):
    """Base class for all expected booking-core failures."""

    code = "BOOKING_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(BookingServiceError):
    """Malformed input, rejected before any write. Never retried."""

    code = "VALIDATION_ERROR"


class PricingError(BookingServiceError):
    code = "PRICING_ERROR"


class InvalidStayDates(PricingError, ValidationError):
    code = "INVALID_DATES"


class NotApplicable(PricingError):
    """No rate plan matches a single night and no default exists."""

    code = "NOT_APPLICABLE"


class NoRateAvailable(PricingError):
    """At least one night of a stay could not be priced."""

    code = "NO_RATE_AVAILABLE"


class RoomTypeNotFound(BookingServiceError):
    code = "ROOM_TYPE_NOT_FOUND"


class NoAvailability(BookingServiceError):
    code = "NO_AVAILABILITY"


class BookingNotFound(BookingServiceError):
    code = "BOOKING_NOT_FOUND"


class CancellationWindowClosed(BookingServiceError):
    code = "CANCELLATION_WINDOW_CLOSED"


class ExternalServiceError(BookingServiceError):
    """Store or gateway unreachable. The outcome of the call is unknown."""

    code = "EXTERNAL_SERVICE_ERROR"


class SignatureVerificationError(BookingServiceError):
    code = "INVALID_SIGNATURE"


class HotelNotFound(BookingServiceError):
    code = "HOTEL_NOT_FOUND"


class ConfirmationCodeUnavailable(BookingServiceError):
    """Every drawn confirmation code was already taken."""

    code = "CONFIRMATION_CODE_UNAVAILABLE"
