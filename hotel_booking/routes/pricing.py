"""Stay pricing and availability routes."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Engine

from hotel_booking.dependencies import get_clock, get_db_engine, get_pricing_calculator
from hotel_booking.errors import BookingServiceError
from hotel_booking.routes._helpers import bad_request, error_response, parse_date, parse_guests
from hotel_booking.services.availability import search_availability
from hotel_booking.services.pricing import PricingCalculator, quote_stay

logger = structlog.get_logger(__name__)
router = APIRouter()

GUESTS_MESSAGE = "guests must be a whole number"
DATES_MESSAGE = "Invalid date format, expected YYYY-MM-DD"


@router.get("/hotels/{hotel_id}/pricing", response_model=None)
def get_pricing(
    hotel_id: str,
    room_type_id: Optional[str] = Query(None, alias="roomTypeId"),
    check_in: Optional[str] = Query(None, alias="checkIn"),
    check_out: Optional[str] = Query(None, alias="checkOut"),
    guests: Optional[str] = Query(None),
    db_engine: Engine = Depends(get_db_engine),
    calculator: PricingCalculator = Depends(get_pricing_calculator),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> Any:
    """
    Price a stay for a room type.

    Example:
        >>> GET /hotels/h-1/pricing?roomTypeId=rt-1&checkIn=2026-03-06&checkOut=2026-03-08&guests=2
        {"nights": 2, "subtotal_cents": 24000, ..., "total_cents": 28400}

    Returns 400 with an error body on missing or malformed parameters, a past
    or invalid stay or a night that no rate plan prices; 404 if the room type
    is unknown or belongs to another hotel.
    """
    if not room_type_id or not check_in or not check_out:
        return bad_request(
            "VALIDATION_ERROR",
            "Missing required parameters: roomTypeId, checkIn and checkOut are required",
        )

    check_in_date = parse_date(check_in)
    check_out_date = parse_date(check_out)
    if check_in_date is None or check_out_date is None:
        return bad_request("INVALID_DATES", DATES_MESSAGE)
    guest_count = parse_guests(guests)
    if guest_count is None:
        return bad_request("VALIDATION_ERROR", GUESTS_MESSAGE)

    try:
        quote = quote_stay(
            db_engine,
            calculator,
            room_type_id,
            check_in_date,
            check_out_date,
            guest_count,
            hotel_id=hotel_id,
            clock=clock,
        )
    except BookingServiceError as e:
        logger.info("pricing_rejected", hotel_id=hotel_id, room_type_id=room_type_id, code=e.code)
        return error_response(e)

    return quote.model_dump(mode="json")


@router.get("/hotels/{hotel_id}/availability", response_model=None)
def get_availability(
    hotel_id: str,
    check_in: Optional[str] = Query(None, alias="checkIn"),
    check_out: Optional[str] = Query(None, alias="checkOut"),
    guests: Optional[str] = Query(None),
    db_engine: Engine = Depends(get_db_engine),
    calculator: PricingCalculator = Depends(get_pricing_calculator),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> Any:
    """
    Search free rooms and prices across a hotel's room types.

    Example:
        >>> GET /hotels/h-1/availability?checkIn=2026-03-06&checkOut=2026-03-08&guests=2
        {"hotel_id": "h-1", "has_availability": true, "room_types": [...]}

    Returns 400 on missing or malformed parameters or a past stay, 404 if the
    hotel does not exist.
    """
    if not check_in or not check_out:
        return bad_request(
            "VALIDATION_ERROR",
            "Missing required parameters: checkIn and checkOut are required",
        )

    check_in_date = parse_date(check_in)
    check_out_date = parse_date(check_out)
    if check_in_date is None or check_out_date is None:
        return bad_request("INVALID_DATES", DATES_MESSAGE)
    guest_count = parse_guests(guests)
    if guest_count is None:
        return bad_request("VALIDATION_ERROR", GUESTS_MESSAGE)

    try:
        search = search_availability(
            db_engine,
            calculator,
            hotel_id,
            check_in_date,
            check_out_date,
            guest_count,
            clock=clock,
        )
    except BookingServiceError as e:
        logger.info("availability_rejected", hotel_id=hotel_id, code=e.code)
        return error_response(e)

    return search.model_dump(mode="json")
