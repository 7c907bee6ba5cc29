"""
Shared fixtures.

Configuration is read at import time, so the required environment variables
are set here before any hotel_booking module is imported. Store-backed tests
run against an in-memory SQLite database created from the ORM metadata.
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ALLOWED_ORIGINS", "*")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "INFO")

import uuid  # noqa: E402
from datetime import date, datetime, timedelta, timezone  # noqa: E402
from typing import Any, Generator, Optional  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402

from hotel_booking.config import HoldSettings, PricingSettings  # noqa: E402
from hotel_booking.schemas.bookings import GuestContact  # noqa: E402
from hotel_booking.services.booking_state import BookingStateMachine  # noqa: E402
from hotel_booking.services.pricing import PricingCalculator, quote_stay  # noqa: E402

from helpers import FRIDAY, FakeClock, Seeder, make_engine  # noqa: E402


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory database per test."""
    test_engine = make_engine()
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    # Booking made well ahead of the March stays used throughout the tests
    return FakeClock(datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def seed(engine: Engine) -> Seeder:
    return Seeder(engine)


@pytest.fixture
def calculator() -> PricingCalculator:
    return PricingCalculator(PricingSettings())


@pytest.fixture
def state_machine(engine: Engine, clock: FakeClock) -> BookingStateMachine:
    return BookingStateMachine(engine, HoldSettings(), clock=clock)


@pytest.fixture
def make_hold(
    engine: Engine,
    calculator: PricingCalculator,
    state_machine: BookingStateMachine,
    clock: FakeClock,
) -> Any:
    """Factory placing a soft hold on a priced stay; returns the BookingView."""

    def _make_hold(
        check_in: date = FRIDAY,
        nights: int = 2,
        room_type_id: str = "rt-deluxe",
        hold_minutes: Optional[int] = None,
    ) -> Any:
        quote = quote_stay(
            engine,
            calculator,
            room_type_id,
            check_in,
            check_in + timedelta(days=nights),
            2,
            clock=clock,
        )
        guest = GuestContact(name=f"Guest {uuid.uuid4().hex[:6]}", email="guest@example.com")
        duration = timedelta(minutes=hold_minutes) if hold_minutes is not None else None
        return state_machine.create_hold(quote, guest, duration)

    return _make_hold
