"""
Scheduled job trigger for expiring lapsed soft holds.

An external scheduler (e.g. a Kubernetes CronJob or the platform's cron)
calls this endpoint every few minutes:

    curl -H "Authorization: Bearer $CRON_SECRET" http://localhost:8000/cron/cleanup-holds
"""

from __future__ import annotations

import hmac
import time
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from hotel_booking import config
from hotel_booking.dependencies import get_hold_sweeper
from hotel_booking.services.hold_sweeper import HoldExpirationSweeper
from hotel_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)
router = APIRouter()


def is_authorized(auth_header: Optional[str]) -> bool:
    """
    Check the cron bearer token.

    With no CRON_SECRET configured, requests are only allowed when
    ENVIRONMENT=development.

    Args:
        auth_header: Authorization header value (e.g., "Bearer s3cret")

    Returns:
        bool: True if the caller may trigger the sweep
    """
    secret = config.CRON_SECRET
    if not secret:
        return config.ENVIRONMENT == "development"
    if not auth_header:
        return False
    return hmac.compare_digest(auth_header, f"Bearer {secret}")


@router.api_route("/cron/cleanup-holds", methods=["GET", "POST"])
def cleanup_holds(
    request: Request,
    sweeper: HoldExpirationSweeper = Depends(get_hold_sweeper),
) -> JSONResponse:
    """
    Expire every pending booking whose soft hold has lapsed.

    Example Response:
        {
            "success": true,
            "expiredCount": 3,
            "skippedCount": 0,
            "errors": [],
            "duration": "42ms",
            "timestamp": "2026-03-06T10:15:00+00:00"
        }
    """
    if not is_authorized(request.headers.get("Authorization")):
        logger.warning("cron_authentication_failed")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Unauthorized"},
        )

    start_time = time.time()
    try:
        summary = sweeper.run()
    except Exception as e:
        logger.exception("hold_cleanup_failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Internal server error",
                "timestamp": utc_now().isoformat(),
            },
        )

    duration_ms = int((time.time() - start_time) * 1000)
    if summary.errors:
        logger.error("hold_cleanup_completed_with_errors", errors=len(summary.errors))

    return JSONResponse(
        content={
            "success": not summary.errors,
            "expiredCount": summary.expired_count,
            "skippedCount": summary.skipped_count,
            "errors": [f"Booking {e.booking_id}: {e.error}" for e in summary.errors],
            "duration": f"{duration_ms}ms",
            "timestamp": utc_now().isoformat(),
        }
    )
