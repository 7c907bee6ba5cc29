"""
Expire lapsed soft holds from the command line.

    python -m hotel_booking.jobs.expire_holds --limit 500

Intended for a system cron or Kubernetes CronJob as an alternative to the
/cron/cleanup-holds endpoint. Exits non-zero if any booking failed to expire.
"""

import argparse
import sys
from typing import Optional, Sequence

import structlog

from hotel_booking.config import load_hold_settings
from hotel_booking.db.engine import engine
from hotel_booking.logging_config import setup_logging
from hotel_booking.services.booking_state import BookingStateMachine
from hotel_booking.services.hold_sweeper import HoldExpirationSweeper

logger = structlog.get_logger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Expire pending bookings whose hold has lapsed")
    parser.add_argument("--limit", type=int, default=None, help="Maximum holds to process")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL for this run")
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    state_machine = BookingStateMachine(engine, load_hold_settings())
    sweeper = HoldExpirationSweeper(engine, state_machine)

    try:
        summary = sweeper.run(limit=args.limit)
    except Exception:
        logger.exception("hold_sweep_job_failed")
        raise

    return 1 if summary.errors else 0


if __name__ == "__main__":
    sys.exit(main())
