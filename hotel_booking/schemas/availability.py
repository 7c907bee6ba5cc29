"""Schemas for hotel availability searches."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict

from hotel_booking.schemas.pricing import Quote


class RoomTypeAvailability(BaseModel):
    """
    One room type's free rooms and price for a searched stay.

    quote is None and unavailable_reason is set when the type cannot be sold
    for the stay (SOLD_OUT or a pricing error code such as NO_RATE_AVAILABLE).
    """

    model_config = ConfigDict(frozen=True)

    room_type_id: str
    name: str
    max_occupancy: int
    total_rooms: int
    available_rooms: int
    is_available: bool
    quote: Optional[Quote] = None
    unavailable_reason: Optional[str] = None


class AvailabilitySearch(BaseModel):
    model_config = ConfigDict(frozen=True)

    hotel_id: str
    hotel_name: str
    check_in: date
    check_out: date
    nights: int
    guests: int
    has_availability: bool
    room_types: list[RoomTypeAvailability]
