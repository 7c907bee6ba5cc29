"""
Internal helper functions for booking route handlers.

Maps booking-core errors to HTTP status codes and the shared error body
``{"error": {"code": ..., "message": ...}}``, and parses the stay query
parameters shared by the pricing and availability routes.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import status
from fastapi.responses import JSONResponse

from hotel_booking.errors import (
    BookingNotFound,
    BookingServiceError,
    CancellationWindowClosed,
    ConfirmationCodeUnavailable,
    ExternalServiceError,
    HotelNotFound,
    NoAvailability,
    RoomTypeNotFound,
    SignatureVerificationError,
    ValidationError,
)
from hotel_booking.schemas.bookings import TransitionOutcome

STATUS_BY_ERROR: list[tuple[type[BookingServiceError], int]] = [
    (BookingNotFound, status.HTTP_404_NOT_FOUND),
    (HotelNotFound, status.HTTP_404_NOT_FOUND),
    (RoomTypeNotFound, status.HTTP_404_NOT_FOUND),
    (NoAvailability, status.HTTP_409_CONFLICT),
    (CancellationWindowClosed, status.HTTP_409_CONFLICT),
    (SignatureVerificationError, status.HTTP_400_BAD_REQUEST),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
    (ConfirmationCodeUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
]


def error_body(code: str, message: str) -> dict[str, dict[str, str]]:
    return {"error": {"code": code, "message": message}}


def bad_request(code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(code, message))


def parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_guests(value: Optional[str]) -> Optional[int]:
    """Guest count from a query string; 1 when absent, None when not a whole number."""
    if value is None:
        return 1
    try:
        return int(value)
    except ValueError:
        return None


def error_response(exc: BookingServiceError) -> JSONResponse:
    """
    Build the JSON error response for a booking-core error.

    Pricing errors that are not validation errors (e.g. no rate for a night)
    are client-visible 400s as well.

    Args:
        exc: Error raised by a service

    Returns:
        JSONResponse: Error body with the matching status code
    """
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, mapped in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = mapped
            break
    return JSONResponse(status_code=status_code, content=error_body(exc.code, exc.message))


def outcome_body(outcome: TransitionOutcome) -> dict[str, object]:
    return {
        "bookingId": outcome.booking_id,
        "action": outcome.action,
        "outcome": outcome.status.value,
        "fromStatus": outcome.from_status,
        "toStatus": outcome.to_status,
        "error": outcome.error,
    }
