"""
Expire soft holds whose deadline has passed.

The sweeper has no scheduler of its own: it is triggered by the
/cron/cleanup-holds route or the hotel-booking-expire-holds command. Running
several sweeps at once is safe because each expiry goes through the state
machine's guarded transition; a hold that was confirmed or cancelled in the
meantime is simply skipped.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

import structlog
from pydantic import BaseModel, Field
from sqlalchemy.engine import Engine

from hotel_booking.db.readers.bookings import list_expired_hold_ids
from hotel_booking.metrics import hold_sweep_duration, holds_expired
from hotel_booking.services.booking_state import BookingStateMachine
from hotel_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


class SweepError(BaseModel):
    booking_id: str
    error: str


class SweepSummary(BaseModel):
    expired_count: int = 0
    skipped_count: int = 0
    errors: list[SweepError] = Field(default_factory=list)


class HoldExpirationSweeper:
    def __init__(
        self,
        engine: Engine,
        state_machine: BookingStateMachine,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.engine = engine
        self.state_machine = state_machine
        self.clock = clock

    def run(self, limit: Optional[int] = None) -> SweepSummary:
        """
        Expire every lapsed pending hold, oldest deadline first.

        A failure on one booking is recorded in the summary and does not stop
        the sweep.

        Args:
            limit: Maximum number of holds to examine in this run

        Returns:
            SweepSummary: Holds expired, holds skipped because another actor
            resolved them first, and per-booking errors
        """
        summary = SweepSummary()

        with hold_sweep_duration.time():
            now = self.clock()
            with self.engine.connect() as conn:
                booking_ids = list_expired_hold_ids(conn, now, limit)

            logger.info("hold_sweep_started", candidates=len(booking_ids))

            for booking_id in booking_ids:
                try:
                    outcome = self.state_machine.expire(booking_id)
                except Exception as e:
                    logger.exception("hold_expiry_failed", booking_id=booking_id)
                    summary.errors.append(SweepError(booking_id=booking_id, error=str(e)))
                    continue

                if outcome.applied:
                    summary.expired_count += 1
                elif outcome.ok:
                    summary.skipped_count += 1
                else:
                    summary.errors.append(
                        SweepError(booking_id=booking_id, error=outcome.error or "unknown error")
                    )

        holds_expired.inc(summary.expired_count)
        logger.info(
            "hold_sweep_completed",
            expired=summary.expired_count,
            skipped=summary.skipped_count,
            errors=len(summary.errors),
        )
        return summary
