"""
Test helpers shared by the unit and integration suites.

Importing this module imports hotel_booking, so tests/conftest.py sets the
required environment variables before anything here is loaded.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import create_engine, insert
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from hotel_booking.models.base import Base
from hotel_booking.models.bookings import Booking, BookingStateLog  # noqa: F401
from hotel_booking.models.hotels import Hotel, Room, RoomType
from hotel_booking.models.payments import Payment, WebhookEvent  # noqa: F401
from hotel_booking.models.rate_plans import RatePlan

# Friday, 6 March 2026
FRIDAY = date(2026, 3, 6)


class FakeClock:
    """Callable clock that tests move forward explicitly."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class Seeder:
    """Inserts hotels, room types, rooms and rate plans for a test."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def hotel(
        self,
        hotel_id: str = "hotel-1",
        timezone_name: str = "UTC",
        check_in_time: str = "15:00",
        cancellation_policy_hours: int = 24,
    ) -> str:
        with self.engine.begin() as conn:
            conn.execute(
                insert(Hotel).values(
                    id=hotel_id,
                    name="Harbour View",
                    currency="USD",
                    timezone=timezone_name,
                    check_in_time=check_in_time,
                    cancellation_policy_hours=cancellation_policy_hours,
                )
            )
        return hotel_id

    def room_type(
        self,
        hotel_id: str = "hotel-1",
        room_type_id: str = "rt-deluxe",
        rooms: int = 1,
        max_occupancy: int = 2,
        is_active: bool = True,
    ) -> str:
        with self.engine.begin() as conn:
            conn.execute(
                insert(RoomType).values(
                    id=room_type_id,
                    hotel_id=hotel_id,
                    name="Deluxe King",
                    max_occupancy=max_occupancy,
                    is_active=is_active,
                )
            )
            for number in range(rooms):
                conn.execute(
                    insert(Room).values(
                        id=f"{room_type_id}-room-{number + 1}",
                        hotel_id=hotel_id,
                        room_type_id=room_type_id,
                        room_number=str(101 + number),
                        is_active=True,
                    )
                )
        return room_type_id

    def rate_plan(
        self,
        rate_plan_id: str,
        price_cents: int,
        room_type_id: str = "rt-deluxe",
        hotel_id: str = "hotel-1",
        valid_from: date = date(2026, 1, 1),
        valid_to: date = date(2026, 12, 31),
        days_of_week: Optional[list[int]] = None,
        priority: int = 0,
        min_stay_nights: int = 1,
        max_stay_nights: Optional[int] = None,
        is_default: bool = False,
    ) -> str:
        with self.engine.begin() as conn:
            conn.execute(
                insert(RatePlan).values(
                    id=rate_plan_id,
                    hotel_id=hotel_id,
                    room_type_id=room_type_id,
                    name=rate_plan_id,
                    price_cents=price_cents,
                    currency="USD",
                    valid_from=valid_from,
                    valid_to=valid_to,
                    days_of_week=days_of_week,
                    priority=priority,
                    min_stay_nights=min_stay_nights,
                    max_stay_nights=max_stay_nights,
                    is_default=is_default,
                    is_active=True,
                )
            )
        return rate_plan_id

    def standard_hotel(self, rooms: int = 1, price_cents: int = 10000) -> dict[str, Any]:
        """One hotel, one room type with ``rooms`` rooms and a year-round rate."""
        hotel_id = self.hotel()
        room_type_id = self.room_type(hotel_id=hotel_id, rooms=rooms)
        self.rate_plan("rp-standard", price_cents, room_type_id=room_type_id, hotel_id=hotel_id)
        return {"hotel_id": hotel_id, "room_type_id": room_type_id}


def make_engine(url: str = "sqlite://") -> Engine:
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url == "sqlite://":
        options["poolclass"] = StaticPool
    engine = create_engine(url, **options)
    Base.metadata.create_all(engine)
    return engine
