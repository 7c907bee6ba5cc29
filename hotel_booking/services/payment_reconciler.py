"""
Apply verified payment gateway events to bookings.

The gateway delivers at least once and in any order, so every handler is
idempotent: a repeated success for an already-paid booking changes nothing,
and a repeated event ID never records a second payment row. Each delivery,
duplicates included, leaves one webhook_events audit row.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from hotel_booking.db.readers.bookings import get_booking
from hotel_booking.db.writers.payments import (
    insert_payment,
    insert_webhook_event,
    payment_event_recorded,
)
from hotel_booking.errors import ExternalServiceError
from hotel_booking.metrics import payment_webhook_events
from hotel_booking.models.bookings import PaymentStatus
from hotel_booking.schemas.payment_events import (
    PaymentEvent,
    PaymentFailed,
    PaymentSucceeded,
    Unrecognized,
)
from hotel_booking.services.booking_state import BookingStateMachine
from hotel_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)

PROCESSED = "processed"
DUPLICATE = "duplicate"
IGNORED = "ignored"
FAILED = "failed"


class ReconcileResult(BaseModel):
    status: str
    booking_id: Optional[str] = None


class PaymentEventReconciler:
    def __init__(
        self,
        engine: Engine,
        state_machine: BookingStateMachine,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.engine = engine
        self.state_machine = state_machine
        self.clock = clock

    def handle(self, event: PaymentEvent) -> ReconcileResult:
        """
        Reconcile one decoded gateway event.

        Args:
            event: Output of parse_payment_event()

        Returns:
            ReconcileResult: processed, duplicate or ignored, with the booking ID

        Raises:
            ExternalServiceError: If the booking could not be updated
            SQLAlchemyError: If the confirmation and payment row could not be
                committed; nothing was written, so the caller should answer 500
                and let the gateway redeliver
        """
        try:
            if isinstance(event, Unrecognized):
                logger.info(
                    "payment_event_unrecognized",
                    event_id=event.event_id,
                    event_type=event.event_type,
                )
                result = ReconcileResult(status=IGNORED)
            elif isinstance(event, PaymentSucceeded):
                result = self._handle_succeeded(event)
            else:
                result = self._handle_failed(event)
        except Exception as e:
            self._audit(event, FAILED, getattr(event, "booking_id", None), error=str(e))
            raise

        self._audit(event, result.status, result.booking_id)
        return result

    def _audit(
        self,
        event: PaymentEvent,
        status: str,
        booking_id: Optional[str],
        error: Optional[str] = None,
    ) -> None:
        payment_webhook_events.labels(event_type=event.event_type, status=status).inc()
        try:
            with self.engine.begin() as conn:
                insert_webhook_event(
                    conn,
                    event_id=event.event_id,
                    event_type=event.event_type,
                    status=status,
                    received_at=self.clock(),
                    booking_id=booking_id,
                    error=error,
                )
        except Exception:
            if status != FAILED:
                raise
            logger.exception("webhook_audit_write_failed", event_id=event.event_id)

    def _load_booking(
        self, event: PaymentSucceeded | PaymentFailed
    ) -> tuple[Optional[dict[str, Any]], bool]:
        """Return the booking an event refers to and whether the event was already recorded."""
        if not event.booking_id:
            logger.warning(
                "payment_event_missing_booking_id",
                event_id=event.event_id,
                event_type=event.event_type,
                payment_reference=event.payment_reference,
            )
            return None, False

        with self.engine.connect() as conn:
            booking = get_booking(conn, event.booking_id)
            recorded = payment_event_recorded(conn, event.event_id)

        if booking is None:
            logger.warning(
                "payment_event_unknown_booking",
                event_id=event.event_id,
                booking_id=event.booking_id,
            )
        return booking, recorded

    def _handle_succeeded(self, event: PaymentSucceeded) -> ReconcileResult:
        """
        Confirm the booking and record the payment in one transaction.

        A redelivery that overlaps the first delivery either finds the booking
        already paid by the same reference after its guarded update misses, or
        trips the unique event ID on the payment insert. Both are duplicates.
        """
        booking, recorded = self._load_booking(event)
        if booking is None:
            return ReconcileResult(status=IGNORED, booking_id=event.booking_id)

        booking_id = booking["id"]
        if recorded or booking["payment_status"] == PaymentStatus.PAID.value:
            logger.info("payment_event_duplicate", event_id=event.event_id, booking_id=booking_id)
            return ReconcileResult(status=DUPLICATE, booking_id=booking_id)

        if event.amount_cents != booking["total_cents"]:
            logger.warning(
                "payment_amount_mismatch",
                booking_id=booking_id,
                expected_cents=booking["total_cents"],
                received_cents=event.amount_cents,
            )

        inactive_status: Optional[str] = None
        try:
            with self.engine.begin() as conn:
                outcome = self.state_machine.confirm(
                    booking_id, event.payment_reference, conn=conn
                )
                if not outcome.ok:
                    raise ExternalServiceError(
                        f"Could not confirm booking {booking_id}: {outcome.error}"
                    )
                if not outcome.applied:
                    current = get_booking(conn, booking_id)
                    if current is not None and _paid_by(current, event.payment_reference):
                        logger.info(
                            "payment_event_duplicate",
                            event_id=event.event_id,
                            booking_id=booking_id,
                        )
                        return ReconcileResult(status=DUPLICATE, booking_id=booking_id)
                    inactive_status = current["status"] if current else booking["status"]

                self._insert_payment(conn, event, booking_id, "succeeded")
        except IntegrityError:
            logger.info("payment_event_duplicate", event_id=event.event_id, booking_id=booking_id)
            return ReconcileResult(status=DUPLICATE, booking_id=booking_id)

        if inactive_status is not None:
            logger.warning(
                "payment_received_for_inactive_booking",
                booking_id=booking_id,
                status=inactive_status,
                payment_reference=event.payment_reference,
                note="Payment recorded; booking left unchanged and needs a manual refund",
            )

        logger.info(
            "payment_succeeded_reconciled",
            booking_id=booking_id,
            event_id=event.event_id,
            confirmed=inactive_status is None,
        )
        return ReconcileResult(status=PROCESSED, booking_id=booking_id)

    def _handle_failed(self, event: PaymentFailed) -> ReconcileResult:
        booking, recorded = self._load_booking(event)
        if booking is None:
            return ReconcileResult(status=IGNORED, booking_id=event.booking_id)

        booking_id = booking["id"]
        if recorded:
            logger.info("payment_event_duplicate", event_id=event.event_id, booking_id=booking_id)
            return ReconcileResult(status=DUPLICATE, booking_id=booking_id)

        try:
            with self.engine.begin() as conn:
                self._insert_payment(
                    conn, event, booking_id, "failed", failure_reason=event.failure_reason
                )
        except IntegrityError:
            logger.info("payment_event_duplicate", event_id=event.event_id, booking_id=booking_id)
            return ReconcileResult(status=DUPLICATE, booking_id=booking_id)

        logger.info(
            "payment_failed_recorded",
            booking_id=booking_id,
            event_id=event.event_id,
            reason=event.failure_reason,
        )
        return ReconcileResult(status=PROCESSED, booking_id=booking_id)

    def _insert_payment(
        self,
        conn: Connection,
        event: PaymentSucceeded | PaymentFailed,
        booking_id: str,
        status: str,
        failure_reason: Optional[str] = None,
    ) -> None:
        insert_payment(
            conn,
            booking_id=booking_id,
            payment_reference=event.payment_reference,
            event_id=event.event_id,
            amount_cents=event.amount_cents,
            currency=event.currency,
            status=status,
            created_at=self.clock(),
            failure_reason=failure_reason,
        )


def _paid_by(booking: dict[str, Any], payment_reference: Optional[str]) -> bool:
    return (
        booking["payment_status"] == PaymentStatus.PAID.value
        and booking["payment_reference"] == payment_reference
    )
