"""Availability search: free rooms and a quote per room type of a hotel."""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable

import structlog
from sqlalchemy.engine import Engine

from hotel_booking.db.readers.bookings import count_room_availability, get_hotel_policy
from hotel_booking.db.readers.rate_plans import list_active_room_types, list_rate_plans_for_stay
from hotel_booking.errors import HotelNotFound, InvalidStayDates, PricingError, ValidationError
from hotel_booking.schemas.availability import AvailabilitySearch, RoomTypeAvailability
from hotel_booking.services.pricing import PricingCalculator
from hotel_booking.utils.datetime import hotel_today, utc_now

logger = structlog.get_logger(__name__)

SOLD_OUT = "SOLD_OUT"


def search_availability(
    engine: Engine,
    calculator: PricingCalculator,
    hotel_id: str,
    check_in: date,
    check_out: date,
    guests: int,
    clock: Callable[[], datetime] = utc_now,
) -> AvailabilitySearch:
    """
    List the active room types of a hotel that fit the party, with free rooms and price.

    Room types too small for ``guests`` are left out. A type with free rooms
    but a night no rate plan prices is reported unavailable with the pricing
    error code. Counts are a snapshot; placing a hold re-checks under a lock.

    Raises:
        InvalidStayDates: If check_out is not after check_in
        ValidationError: If guests is below one or the stay starts before today
            at the hotel (code PAST_CHECK_IN)
        HotelNotFound: If the hotel does not exist
    """
    if check_out <= check_in:
        raise InvalidStayDates("Check-out date must be after check-in date")
    if guests < 1:
        raise ValidationError("At least one guest is required")

    now = clock()
    results: list[RoomTypeAvailability] = []
    with engine.connect() as conn:
        hotel = get_hotel_policy(conn, hotel_id)
        if hotel is None:
            raise HotelNotFound(f"Hotel {hotel_id} not found")
        if check_in < hotel_today(now, hotel["timezone"]):
            raise ValidationError("Check-in date cannot be in the past", code="PAST_CHECK_IN")

        for room_type in list_active_room_types(conn, hotel_id):
            if room_type["max_occupancy"] < guests:
                continue
            total, free = count_room_availability(
                conn, room_type["id"], check_in, check_out, now
            )
            entry = {
                "room_type_id": room_type["id"],
                "name": room_type["name"],
                "max_occupancy": room_type["max_occupancy"],
                "total_rooms": total,
                "available_rooms": free,
            }
            if free == 0:
                results.append(
                    RoomTypeAvailability(**entry, is_available=False, unavailable_reason=SOLD_OUT)
                )
                continue

            plans = list_rate_plans_for_stay(conn, room_type["id"], check_in, check_out)
            try:
                quote = calculator.quote(room_type["id"], check_in, check_out, guests, plans)
            except PricingError as e:
                results.append(
                    RoomTypeAvailability(**entry, is_available=False, unavailable_reason=e.code)
                )
                continue
            quote = quote.model_copy(update={"hotel_id": hotel_id, "currency": hotel["currency"]})
            results.append(RoomTypeAvailability(**entry, is_available=True, quote=quote))

    search = AvailabilitySearch(
        hotel_id=hotel_id,
        hotel_name=hotel["name"],
        check_in=check_in,
        check_out=check_out,
        nights=(check_out - check_in).days,
        guests=guests,
        has_availability=any(entry.is_available for entry in results),
        room_types=results,
    )
    logger.info(
        "availability_searched",
        hotel_id=hotel_id,
        check_in=check_in.isoformat(),
        check_out=check_out.isoformat(),
        room_types=len(results),
        available=sum(1 for entry in results if entry.is_available),
    )
    return search
