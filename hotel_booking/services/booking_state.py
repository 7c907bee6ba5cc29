"""
Booking lifecycle as a guarded state machine.

Every status change is a single conditional UPDATE keyed on the booking's
current status, committed together with its booking_state_log row. When two
actors race (payment confirmation against hold expiry, a guest cancelling
against a payment) exactly one UPDATE matches; the other gets a NOOP outcome
and treats the booking as already handled.

    pending ──confirm──> confirmed ──check_in──> checked_in ──check_out──> checked_out
       │ └────expire────> expired        │
       └──────cancel────> cancelled <────┘
"""

from __future__ import annotations

import secrets
import string
import uuid
from datetime import datetime, time, timedelta, timezone
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement

from hotel_booking.config import HoldSettings
from hotel_booking.db.readers.bookings import (
    confirmation_code_exists,
    find_available_room,
    get_booking,
    get_booking_by_confirmation_code,
    get_hotel_policy,
)
from hotel_booking.db.readers.rate_plans import get_room_type
from hotel_booking.db.writers.bookings import guarded_update, insert_booking, insert_state_log
from hotel_booking.errors import (
    BookingNotFound,
    CancellationWindowClosed,
    ConfirmationCodeUnavailable,
    NoAvailability,
    RoomTypeNotFound,
    ValidationError,
)
from hotel_booking.metrics import booking_transitions, holds_created
from hotel_booking.models.bookings import Booking, BookingStatus, PaymentStatus
from hotel_booking.schemas.bookings import (
    BookingView,
    GuestContact,
    OutcomeStatus,
    TransitionOutcome,
)
from hotel_booking.schemas.pricing import Quote
from hotel_booking.utils.datetime import ensure_utc, hotel_today, utc_now

logger = structlog.get_logger(__name__)

TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.EXPIRED}
    ),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CHECKED_IN, BookingStatus.CANCELLED}),
    BookingStatus.CHECKED_IN: frozenset({BookingStatus.CHECKED_OUT}),
    BookingStatus.CHECKED_OUT: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.EXPIRED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}

CONFIRMATION_CODE_ALPHABET = string.ascii_uppercase + string.digits
CONFIRMATION_CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 5


def can_transition(from_status: str, to_status: str) -> bool:
    """Whether ``from_status -> to_status`` is an edge of the booking lifecycle."""
    return BookingStatus(to_status) in TRANSITIONS[BookingStatus(from_status)]


def is_terminal(status: str) -> bool:
    return not TRANSITIONS[BookingStatus(status)]


def generate_confirmation_code() -> str:
    return "".join(
        secrets.choice(CONFIRMATION_CODE_ALPHABET) for _ in range(CONFIRMATION_CODE_LENGTH)
    )


def cancellation_cutoff(booking: dict[str, Any], policy: dict[str, Any]) -> datetime:
    """
    Latest instant a confirmed booking may still be cancelled.

    The check-in date at the hotel's check-in time, in the hotel's timezone,
    minus the hotel's cancellation policy hours. Returned in UTC.
    """
    hour, minute = (int(part) for part in policy["check_in_time"].split(":", 1))
    arrival = datetime.combine(
        booking["check_in_date"], time(hour, minute), tzinfo=ZoneInfo(policy["timezone"])
    )
    cutoff = arrival - timedelta(hours=policy["cancellation_policy_hours"])
    return cutoff.astimezone(timezone.utc)


class BookingStateMachine:
    """
    Owns every write to a booking's status.

    Args:
        engine: SQLAlchemy engine
        settings: Soft hold durations
        clock: Returns the current aware UTC time (injectable for tests)
    """

    def __init__(
        self,
        engine: Engine,
        settings: HoldSettings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.engine = engine
        self.settings = settings
        self.clock = clock

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, booking_id: str) -> Optional[BookingView]:
        with self.engine.connect() as conn:
            row = get_booking(conn, booking_id)
        return BookingView.model_validate(row) if row else None

    def get_by_confirmation_code(self, code: str) -> Optional[BookingView]:
        with self.engine.connect() as conn:
            row = get_booking_by_confirmation_code(conn, code)
        return BookingView.model_validate(row) if row else None

    # -------------------------------------------------------------------------
    # Hold creation
    # -------------------------------------------------------------------------

    def _hold_duration(self, hold_duration: Optional[timedelta]) -> timedelta:
        if hold_duration is None:
            return timedelta(minutes=self.settings.default_minutes)
        lower = timedelta(minutes=self.settings.min_minutes)
        upper = timedelta(minutes=self.settings.max_minutes)
        if not lower <= hold_duration <= upper:
            raise ValidationError(
                f"Hold duration must be between {self.settings.min_minutes} and "
                f"{self.settings.max_minutes} minutes"
            )
        return hold_duration

    def create_hold(
        self,
        quote: Optional[Quote],
        guest: GuestContact,
        hold_duration: Optional[timedelta] = None,
    ) -> BookingView:
        """
        Place a soft hold on a room for a freshly priced stay.

        The booking starts pending with payment pending, a hold deadline and
        an immutable snapshot of the quote it was priced at.

        Args:
            quote: Quote produced by the pricing calculator for this stay
            guest: Guest contact details
            hold_duration: How long the hold lasts (default from settings)

        Returns:
            BookingView: The new pending booking

        Raises:
            ValidationError: If the quote or hold duration is invalid, or the
                stay starts before today at the hotel
            RoomTypeNotFound: If the quoted room type no longer exists
            NoAvailability: If every room of the type is taken for the stay
            ConfirmationCodeUnavailable: If no unused confirmation code was drawn
        """
        if quote is None:
            raise ValidationError("A price quote is required to place a hold")
        if quote.nights < 1 or quote.guests < 1 or quote.total_cents < 0:
            raise ValidationError("Quote is not valid for a hold")

        duration = self._hold_duration(hold_duration)
        now = self.clock()
        booking_id = str(uuid.uuid4())

        with self.engine.begin() as conn:
            room_type = get_room_type(conn, quote.room_type_id)
            if room_type is None:
                raise RoomTypeNotFound(f"Room type {quote.room_type_id} not found")
            if quote.check_in < hotel_today(now, room_type["timezone"]):
                raise ValidationError(
                    "Check-in date cannot be in the past", code="PAST_CHECK_IN"
                )

            room = find_available_room(
                conn, quote.room_type_id, quote.check_in, quote.check_out, now
            )
            if room is None:
                logger.info(
                    "hold_rejected_no_availability",
                    room_type_id=quote.room_type_id,
                    check_in=quote.check_in.isoformat(),
                    check_out=quote.check_out.isoformat(),
                )
                raise NoAvailability(
                    f"No {quote.room_type_id} room is available for the requested dates"
                )

            for _ in range(MAX_CODE_ATTEMPTS):
                code = generate_confirmation_code()
                if not confirmation_code_exists(conn, code):
                    break
            else:
                logger.error("confirmation_code_exhausted", attempts=MAX_CODE_ATTEMPTS)
                raise ConfirmationCodeUnavailable(
                    f"No unused confirmation code after {MAX_CODE_ATTEMPTS} attempts"
                )

            insert_booking(
                conn,
                {
                    "id": booking_id,
                    "confirmation_code": code,
                    "hotel_id": room["hotel_id"],
                    "room_id": room["id"],
                    "room_type_id": quote.room_type_id,
                    "check_in_date": quote.check_in,
                    "check_out_date": quote.check_out,
                    "guest_name": guest.name,
                    "guest_email": guest.email,
                    "guest_phone": guest.phone,
                    "num_guests": quote.guests,
                    "status": BookingStatus.PENDING.value,
                    "payment_status": PaymentStatus.PENDING.value,
                    "soft_hold_expires_at": now + duration,
                    "price_snapshot": quote.model_dump(mode="json"),
                    "total_cents": quote.total_cents,
                    "currency": quote.currency,
                    "created_at": now,
                    "updated_at": now,
                },
            )
            row = get_booking(conn, booking_id)

        holds_created.inc()
        logger.info(
            "hold_created",
            booking_id=booking_id,
            room_id=room["id"],
            confirmation_code=code,
            expires_at=(now + duration).isoformat(),
            total_cents=quote.total_cents,
        )

        if row is None:
            raise BookingNotFound(f"Booking {booking_id} not found after insert")
        return BookingView.model_validate(row)

    # -------------------------------------------------------------------------
    # Guarded transitions
    # -------------------------------------------------------------------------

    def _apply(
        self,
        conn: Connection,
        booking_id: str,
        from_status: BookingStatus,
        to_status: BookingStatus,
        values: dict[str, Any],
        extra_conditions: tuple[ColumnElement[bool], ...],
        reason: Optional[str],
        now: datetime,
    ) -> bool:
        matched = guarded_update(conn, booking_id, from_status.value, values, extra_conditions)
        if matched:
            insert_state_log(conn, booking_id, from_status.value, to_status.value, now, reason)
        return bool(matched)

    def _transition(
        self,
        booking_id: str,
        action: str,
        from_status: BookingStatus,
        to_status: BookingStatus,
        values: dict[str, Any],
        extra_conditions: tuple[ColumnElement[bool], ...] = (),
        reason: Optional[str] = None,
        conn: Optional[Connection] = None,
    ) -> TransitionOutcome:
        now = self.clock()
        values = {**values, "status": to_status.value, "updated_at": now}
        args = (booking_id, from_status, to_status, values, extra_conditions, reason, now)

        if conn is not None:
            # Caller owns the transaction and its failure handling
            matched = self._apply(conn, *args)
        else:
            try:
                with self.engine.begin() as own_conn:
                    matched = self._apply(own_conn, *args)
            except SQLAlchemyError as e:
                logger.exception(
                    "booking_transition_failed", booking_id=booking_id, action=action
                )
                booking_transitions.labels(
                    action=action, outcome=OutcomeStatus.FAILED.value
                ).inc()
                return TransitionOutcome(
                    booking_id=booking_id,
                    action=action,
                    status=OutcomeStatus.FAILED,
                    from_status=from_status.value,
                    to_status=to_status.value,
                    error=str(e),
                )

        outcome = OutcomeStatus.APPLIED if matched else OutcomeStatus.NOOP
        booking_transitions.labels(action=action, outcome=outcome.value).inc()

        if matched:
            logger.info(
                "booking_transitioned",
                booking_id=booking_id,
                action=action,
                from_status=from_status.value,
                to_status=to_status.value,
            )
        else:
            logger.debug(
                "booking_transition_noop",
                booking_id=booking_id,
                action=action,
                expected_status=from_status.value,
            )

        return TransitionOutcome(
            booking_id=booking_id,
            action=action,
            status=outcome,
            from_status=from_status.value,
            to_status=to_status.value,
        )

    def confirm(
        self,
        booking_id: str,
        payment_reference: Optional[str],
        conn: Optional[Connection] = None,
    ) -> TransitionOutcome:
        """
        Mark a pending hold as paid and confirmed, clearing its hold deadline.

        With ``conn`` the update and its state log join the caller's open
        transaction, and database errors propagate instead of becoming a
        FAILED outcome.
        """
        return self._transition(
            booking_id,
            "confirm",
            BookingStatus.PENDING,
            BookingStatus.CONFIRMED,
            {
                "payment_status": PaymentStatus.PAID.value,
                "payment_reference": payment_reference,
                "soft_hold_expires_at": None,
            },
            conn=conn,
        )

    def expire(self, booking_id: str) -> TransitionOutcome:
        """
        Expire a pending hold whose deadline has passed.

        Non-pending rows never match, whatever their soft_hold_expires_at says.
        """
        now = self.clock()
        return self._transition(
            booking_id,
            "expire",
            BookingStatus.PENDING,
            BookingStatus.EXPIRED,
            {"soft_hold_expires_at": None},
            extra_conditions=(Booking.soft_hold_expires_at <= now,),
            reason="hold_expired",
        )

    def cancel(self, booking_id: str, reason: str) -> TransitionOutcome:
        """
        Cancel a pending hold or a confirmed booking.

        Raises:
            BookingNotFound: If the booking does not exist
            CancellationWindowClosed: If a confirmed booking is past its cutoff
        """
        now = self.clock()
        with self.engine.connect() as conn:
            booking = get_booking(conn, booking_id)
            if booking is None:
                raise BookingNotFound(f"Booking {booking_id} not found")
            policy = get_hotel_policy(conn, booking["hotel_id"])

        values: dict[str, Any] = {"cancellation_reason": reason, "cancelled_at": now}
        status = booking["status"]

        if status == BookingStatus.PENDING.value:
            values["soft_hold_expires_at"] = None
            return self._transition(
                booking_id,
                "cancel",
                BookingStatus.PENDING,
                BookingStatus.CANCELLED,
                values,
                reason=reason,
            )

        if status == BookingStatus.CONFIRMED.value:
            if policy is not None:
                cutoff = cancellation_cutoff(booking, policy)
                if now >= cutoff:
                    raise CancellationWindowClosed(
                        f"Cancellation window closed at {cutoff.isoformat()}"
                    )
            if booking["payment_status"] == PaymentStatus.PAID.value:
                values["payment_status"] = PaymentStatus.REFUNDED.value
            return self._transition(
                booking_id,
                "cancel",
                BookingStatus.CONFIRMED,
                BookingStatus.CANCELLED,
                values,
                reason=reason,
            )

        booking_transitions.labels(action="cancel", outcome=OutcomeStatus.NOOP.value).inc()
        logger.debug("booking_transition_noop", booking_id=booking_id, action="cancel", status=status)
        return TransitionOutcome(
            booking_id=booking_id,
            action="cancel",
            status=OutcomeStatus.NOOP,
            from_status=status,
            to_status=BookingStatus.CANCELLED.value,
        )

    def check_in(self, booking_id: str) -> TransitionOutcome:
        return self._transition(
            booking_id,
            "check_in",
            BookingStatus.CONFIRMED,
            BookingStatus.CHECKED_IN,
            {"checked_in_at": self.clock()},
        )

    def check_out(self, booking_id: str) -> TransitionOutcome:
        return self._transition(
            booking_id,
            "check_out",
            BookingStatus.CHECKED_IN,
            BookingStatus.CHECKED_OUT,
            {"checked_out_at": self.clock()},
        )

    def extend_hold(self, booking_id: str, additional_minutes: int) -> TransitionOutcome:
        """
        Push back the deadline of a live soft hold.

        Guarded on both the status and the deadline that was read, so a
        concurrent confirm, expire or second extension wins over this one.

        Raises:
            ValidationError: If additional_minutes is out of range
            BookingNotFound: If the booking does not exist
        """
        if not 1 <= additional_minutes <= self.settings.max_extension_minutes:
            raise ValidationError(
                f"Hold can be extended by 1 to {self.settings.max_extension_minutes} minutes"
            )

        now = self.clock()
        with self.engine.connect() as conn:
            booking = get_booking(conn, booking_id)
        if booking is None:
            raise BookingNotFound(f"Booking {booking_id} not found")

        current_expiry = booking["soft_hold_expires_at"]
        if (
            booking["status"] != BookingStatus.PENDING.value
            or current_expiry is None
            or ensure_utc(current_expiry) <= now
        ):
            booking_transitions.labels(
                action="extend_hold", outcome=OutcomeStatus.NOOP.value
            ).inc()
            logger.debug("hold_extension_noop", booking_id=booking_id, status=booking["status"])
            return TransitionOutcome(
                booking_id=booking_id,
                action="extend_hold",
                status=OutcomeStatus.NOOP,
                from_status=booking["status"],
                to_status=booking["status"],
                error="Hold is no longer active",
            )

        new_expiry = ensure_utc(current_expiry) + timedelta(minutes=additional_minutes)
        with self.engine.begin() as conn:
            matched = guarded_update(
                conn,
                booking_id,
                BookingStatus.PENDING.value,
                {"soft_hold_expires_at": new_expiry, "updated_at": now},
                extra_conditions=(Booking.soft_hold_expires_at == current_expiry,),
            )

        outcome = OutcomeStatus.APPLIED if matched else OutcomeStatus.NOOP
        booking_transitions.labels(action="extend_hold", outcome=outcome.value).inc()
        logger.info(
            "hold_extended" if matched else "hold_extension_noop",
            booking_id=booking_id,
            expires_at=new_expiry.isoformat(),
        )
        return TransitionOutcome(
            booking_id=booking_id,
            action="extend_hold",
            status=outcome,
            from_status=BookingStatus.PENDING.value,
            to_status=BookingStatus.PENDING.value,
        )

    def record_payment_intent(self, booking_id: str, reference: str) -> bool:
        """Save a gateway payment intent reference on a booking that is still pending."""
        with self.engine.begin() as conn:
            matched = guarded_update(
                conn,
                booking_id,
                BookingStatus.PENDING.value,
                {"payment_reference": reference, "updated_at": self.clock()},
            )
        return bool(matched)
