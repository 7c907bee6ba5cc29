"""
Integration tests for the booking state machine against a real database.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from hotel_booking.errors import (
    BookingNotFound,
    CancellationWindowClosed,
    ConfirmationCodeUnavailable,
    NoAvailability,
    ValidationError,
)
from hotel_booking.models.bookings import Booking, BookingStateLog
from hotel_booking.schemas.bookings import GuestContact, OutcomeStatus
from hotel_booking.services.booking_state import (
    MAX_CODE_ATTEMPTS,
    BookingStateMachine,
    can_transition,
    cancellation_cutoff,
    is_terminal,
)
from hotel_booking.services.pricing import PricingCalculator, quote_stay
from hotel_booking.utils.datetime import ensure_utc

from helpers import FRIDAY, FakeClock, Seeder


def state_log(engine: Engine, booking_id: str) -> list[tuple[str, str, Any]]:
    with engine.connect() as conn:
        rows = conn.execute(
            select(BookingStateLog.from_status, BookingStateLog.to_status, BookingStateLog.reason)
            .where(BookingStateLog.booking_id == booking_id)
            .order_by(BookingStateLog.id)
        ).all()
    return [tuple(row) for row in rows]


@pytest.fixture(autouse=True)
def hotel(seed: Seeder) -> dict[str, Any]:
    return seed.standard_hotel(rooms=1)


@pytest.mark.integration
def test_create_hold_places_pending_booking(make_hold: Any, clock: FakeClock) -> None:
    booking = make_hold()

    assert booking.status == "pending"
    assert booking.payment_status == "pending"
    assert booking.room_id == "rt-deluxe-room-1"
    assert len(booking.confirmation_code) == 6
    assert ensure_utc(booking.soft_hold_expires_at) == clock.now + timedelta(minutes=15)


@pytest.mark.integration
def test_create_hold_snapshots_the_quote(make_hold: Any) -> None:
    booking = make_hold(nights=2)

    assert booking.total_cents == 24000
    assert booking.price_snapshot["total_cents"] == booking.total_cents
    assert booking.price_snapshot["subtotal_cents"] == 20000
    assert [item["type"] for item in booking.price_snapshot["line_items"]] == ["room", "tax", "fee"]


@pytest.mark.integration
def test_create_hold_custom_duration(make_hold: Any, clock: FakeClock) -> None:
    booking = make_hold(hold_minutes=45)

    assert ensure_utc(booking.soft_hold_expires_at) == clock.now + timedelta(minutes=45)


@pytest.mark.integration
@pytest.mark.parametrize("minutes", [0, 61])
def test_create_hold_rejects_out_of_range_duration(make_hold: Any, minutes: int) -> None:
    with pytest.raises(ValidationError):
        make_hold(hold_minutes=minutes)


@pytest.mark.integration
def test_create_hold_requires_a_quote(state_machine: BookingStateMachine) -> None:
    with pytest.raises(ValidationError):
        state_machine.create_hold(None, GuestContact(name="Ada", email="ada@example.com"))


@pytest.mark.integration
def test_overlapping_hold_is_rejected_when_room_taken(make_hold: Any) -> None:
    make_hold(check_in=FRIDAY, nights=2)

    with pytest.raises(NoAvailability):
        make_hold(check_in=FRIDAY + timedelta(days=1), nights=2)


@pytest.mark.integration
def test_back_to_back_stays_share_a_room(make_hold: Any) -> None:
    first = make_hold(check_in=FRIDAY, nights=2)
    second = make_hold(check_in=FRIDAY + timedelta(days=2), nights=2)

    assert first.room_id == second.room_id


@pytest.mark.integration
def test_second_room_used_when_first_is_held(seed: Seeder, make_hold: Any) -> None:
    seed.room_type(room_type_id="rt-suite", rooms=2)
    seed.rate_plan("rp-suite", 30000, room_type_id="rt-suite")

    first = make_hold(room_type_id="rt-suite")
    second = make_hold(room_type_id="rt-suite")

    assert {first.room_id, second.room_id} == {"rt-suite-room-1", "rt-suite-room-2"}


@pytest.mark.integration
def test_lapsed_hold_does_not_block_room(make_hold: Any, clock: FakeClock) -> None:
    first = make_hold()
    clock.advance(minutes=16)

    second = make_hold()

    assert second.room_id == first.room_id


@pytest.mark.integration
def test_confirm_is_applied_once(
    engine: Engine, make_hold: Any, state_machine: BookingStateMachine
) -> None:
    booking = make_hold()

    first = state_machine.confirm(booking.id, "pi_123")
    second = state_machine.confirm(booking.id, "pi_123")

    assert first.status is OutcomeStatus.APPLIED
    assert second.status is OutcomeStatus.NOOP
    assert second.ok

    confirmed = state_machine.get(booking.id)
    assert confirmed is not None
    assert confirmed.status == "confirmed"
    assert confirmed.payment_status == "paid"
    assert confirmed.payment_reference == "pi_123"
    assert confirmed.soft_hold_expires_at is None
    assert state_log(engine, booking.id) == [("pending", "confirmed", None)]


@pytest.mark.integration
def test_expire_requires_lapsed_deadline(
    engine: Engine, make_hold: Any, state_machine: BookingStateMachine, clock: FakeClock
) -> None:
    booking = make_hold()

    assert state_machine.expire(booking.id).status is OutcomeStatus.NOOP

    clock.advance(minutes=15)
    outcome = state_machine.expire(booking.id)

    assert outcome.applied
    expired = state_machine.get(booking.id)
    assert expired is not None
    assert expired.status == "expired"
    assert expired.soft_hold_expires_at is None
    assert state_log(engine, booking.id) == [("pending", "expired", "hold_expired")]


@pytest.mark.integration
def test_expire_never_touches_confirmed_booking(
    make_hold: Any, state_machine: BookingStateMachine, clock: FakeClock
) -> None:
    booking = make_hold()
    state_machine.confirm(booking.id, "pi_123")
    clock.advance(hours=1)

    outcome = state_machine.expire(booking.id)

    assert outcome.status is OutcomeStatus.NOOP
    current = state_machine.get(booking.id)
    assert current is not None
    assert current.status == "confirmed"


@pytest.mark.integration
def test_confirm_after_expiry_is_noop(
    make_hold: Any, state_machine: BookingStateMachine, clock: FakeClock
) -> None:
    booking = make_hold()
    clock.advance(minutes=20)
    state_machine.expire(booking.id)

    outcome = state_machine.confirm(booking.id, "pi_late")

    assert outcome.status is OutcomeStatus.NOOP
    current = state_machine.get(booking.id)
    assert current is not None
    assert current.status == "expired"
    assert current.payment_status == "pending"


@pytest.mark.integration
def test_cancel_pending_hold(
    engine: Engine, make_hold: Any, state_machine: BookingStateMachine
) -> None:
    booking = make_hold()

    outcome = state_machine.cancel(booking.id, "changed plans")

    assert outcome.applied
    cancelled = state_machine.get(booking.id)
    assert cancelled is not None
    assert cancelled.status == "cancelled"
    assert cancelled.payment_status == "pending"
    assert cancelled.soft_hold_expires_at is None
    assert state_log(engine, booking.id) == [("pending", "cancelled", "changed plans")]


@pytest.mark.integration
def test_cancel_paid_booking_inside_window_marks_refund(
    make_hold: Any, state_machine: BookingStateMachine
) -> None:
    booking = make_hold()
    state_machine.confirm(booking.id, "pi_123")

    outcome = state_machine.cancel(booking.id, "illness")

    assert outcome.applied
    cancelled = state_machine.get(booking.id)
    assert cancelled is not None
    assert cancelled.status == "cancelled"
    assert cancelled.payment_status == "refunded"


@pytest.mark.integration
def test_cancel_after_cutoff_is_refused(
    make_hold: Any, state_machine: BookingStateMachine, clock: FakeClock
) -> None:
    booking = make_hold()
    state_machine.confirm(booking.id, "pi_123")
    # Check-in Friday 15:00 UTC with a 24 hour policy
    clock.now = datetime(2026, 3, 5, 15, 0, tzinfo=timezone.utc)

    with pytest.raises(CancellationWindowClosed):
        state_machine.cancel(booking.id, "too late")

    current = state_machine.get(booking.id)
    assert current is not None
    assert current.status == "confirmed"


@pytest.mark.integration
def test_cancel_terminal_booking_is_noop(
    make_hold: Any, state_machine: BookingStateMachine
) -> None:
    booking = make_hold()
    state_machine.cancel(booking.id, "first")

    outcome = state_machine.cancel(booking.id, "second")

    assert outcome.status is OutcomeStatus.NOOP
    assert outcome.from_status == "cancelled"


@pytest.mark.integration
def test_cancel_unknown_booking(state_machine: BookingStateMachine) -> None:
    with pytest.raises(BookingNotFound):
        state_machine.cancel("does-not-exist", "reason")


@pytest.mark.integration
def test_check_in_and_check_out(
    engine: Engine, make_hold: Any, state_machine: BookingStateMachine
) -> None:
    booking = make_hold()

    assert state_machine.check_in(booking.id).status is OutcomeStatus.NOOP

    state_machine.confirm(booking.id, "pi_123")
    assert state_machine.check_out(booking.id).status is OutcomeStatus.NOOP
    assert state_machine.check_in(booking.id).applied
    assert state_machine.check_out(booking.id).applied

    assert [row[1] for row in state_log(engine, booking.id)] == [
        "confirmed",
        "checked_in",
        "checked_out",
    ]


@pytest.mark.integration
def test_extend_hold_pushes_deadline(
    make_hold: Any, state_machine: BookingStateMachine, clock: FakeClock
) -> None:
    booking = make_hold()

    outcome = state_machine.extend_hold(booking.id, 10)

    assert outcome.applied
    extended = state_machine.get(booking.id)
    assert extended is not None
    assert ensure_utc(extended.soft_hold_expires_at) == clock.now + timedelta(minutes=25)


@pytest.mark.integration
def test_extend_lapsed_hold_is_noop(
    make_hold: Any, state_machine: BookingStateMachine, clock: FakeClock
) -> None:
    booking = make_hold()
    clock.advance(minutes=15)

    outcome = state_machine.extend_hold(booking.id, 10)

    assert outcome.status is OutcomeStatus.NOOP
    assert outcome.error == "Hold is no longer active"


@pytest.mark.integration
@pytest.mark.parametrize("minutes", [0, 31])
def test_extend_hold_rejects_out_of_range(
    make_hold: Any, state_machine: BookingStateMachine, minutes: int
) -> None:
    booking = make_hold()

    with pytest.raises(ValidationError):
        state_machine.extend_hold(booking.id, minutes)


@pytest.mark.integration
def test_extend_unknown_booking(state_machine: BookingStateMachine) -> None:
    with pytest.raises(BookingNotFound):
        state_machine.extend_hold("does-not-exist", 5)


@pytest.mark.integration
def test_lookup_by_confirmation_code_is_case_insensitive(
    make_hold: Any, state_machine: BookingStateMachine
) -> None:
    booking = make_hold()

    found = state_machine.get_by_confirmation_code(booking.confirmation_code.lower())

    assert found is not None
    assert found.id == booking.id
    assert state_machine.get_by_confirmation_code("MISSING") is None


@pytest.mark.integration
def test_record_payment_intent_only_while_pending(
    make_hold: Any, state_machine: BookingStateMachine
) -> None:
    booking = make_hold()

    assert state_machine.record_payment_intent(booking.id, "pi_1") is True
    state_machine.confirm(booking.id, "pi_1")
    assert state_machine.record_payment_intent(booking.id, "pi_2") is False

    current = state_machine.get(booking.id)
    assert current is not None
    assert current.payment_reference == "pi_1"


@pytest.mark.integration
def test_transition_table() -> None:
    assert can_transition("pending", "confirmed")
    assert can_transition("confirmed", "cancelled")
    assert not can_transition("expired", "confirmed")
    assert not can_transition("checked_in", "cancelled")
    assert is_terminal("checked_out")
    assert not is_terminal("confirmed")


@pytest.mark.integration
def test_cancellation_cutoff_uses_hotel_timezone() -> None:
    cutoff = cancellation_cutoff(
        {"check_in_date": FRIDAY},
        {"check_in_time": "15:00", "timezone": "America/New_York", "cancellation_policy_hours": 24},
    )

    assert cutoff == datetime(2026, 3, 5, 20, 0, tzinfo=timezone.utc)


@pytest.mark.integration
def test_hold_for_stay_already_started_is_rejected(
    engine: Engine,
    calculator: PricingCalculator,
    state_machine: BookingStateMachine,
    clock: FakeClock,
) -> None:
    quote = quote_stay(
        engine, calculator, "rt-deluxe", FRIDAY, FRIDAY + timedelta(days=2), 2, clock=clock
    )
    clock.now = datetime(2026, 3, 7, 9, 0, tzinfo=timezone.utc)

    with pytest.raises(ValidationError) as excinfo:
        state_machine.create_hold(quote, GuestContact(name="Ada", email="ada@example.com"))

    assert excinfo.value.code == "PAST_CHECK_IN"
    with engine.connect() as conn:
        assert conn.execute(select(func.count()).select_from(Booking)).scalar_one() == 0


@pytest.mark.integration
def test_taken_confirmation_code_is_redrawn(make_hold: Any) -> None:
    with patch(
        "hotel_booking.services.booking_state.confirmation_code_exists",
        side_effect=[True, False],
    ) as exists:
        booking = make_hold()

    assert exists.call_count == 2
    assert booking.status == "pending"


@pytest.mark.integration
def test_exhausted_confirmation_codes_raise_without_inserting(
    engine: Engine, make_hold: Any
) -> None:
    with patch(
        "hotel_booking.services.booking_state.confirmation_code_exists", return_value=True
    ) as exists:
        with pytest.raises(ConfirmationCodeUnavailable):
            make_hold()

    assert exists.call_count == MAX_CODE_ATTEMPTS
    with engine.connect() as conn:
        assert conn.execute(select(func.count()).select_from(Booking)).scalar_one() == 0
