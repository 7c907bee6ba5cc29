"""Bulk rate plan update route."""

from __future__ import annotations

from typing import Any, Optional

import pydantic
import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from hotel_booking.dependencies import get_bulk_rate_updater
from hotel_booking.errors import ValidationError
from hotel_booking.schemas.rates import BulkRateUpdateRequest
from hotel_booking.services.bulk_rates import BulkRateUpdater

logger = structlog.get_logger(__name__)
router = APIRouter()


def _failure(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": message},
    )


@router.post("/rates/bulk-update")
async def bulk_update_rates(
    request: Request,
    hotel_id: Optional[str] = Query(None, alias="hotelId"),
    updater: BulkRateUpdater = Depends(get_bulk_rate_updater),
) -> JSONResponse:
    """
    Reprice several rate plans for a date range.

    Example Request:
        POST /rates/bulk-update?hotelId=h-1
        {
            "ratePlanIds": ["rp-1", "rp-2"],
            "startDate": "2026-06-01",
            "endDate": "2026-08-31",
            "updates": [{"ratePlanId": "rp-1", "newPrice": 15000},
                        {"ratePlanId": "rp-2", "newPrice": 18000}]
        }

    Returns:
        400 on a structurally invalid request (nothing written),
        200 when every plan was updated,
        207 when some plans failed; failures are listed in "errors"
    """
    try:
        raw: Any = await request.json()
    except ValueError:
        return _failure("Invalid JSON")

    try:
        payload = BulkRateUpdateRequest.model_validate(raw)
    except pydantic.ValidationError as e:
        logger.info("bulk_rate_update_rejected", error=str(e))
        return _failure("Invalid request: ratePlanIds, startDate, endDate and updates are required")

    try:
        result = updater.apply(payload, hotel_id=hotel_id)
    except ValidationError as e:
        logger.info("bulk_rate_update_rejected", error=e.message)
        return _failure(e.message)
    except Exception as e:
        logger.exception("bulk_rate_update_failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Internal server error"},
        )

    body = {
        "success": not result.is_partial,
        "updatedCount": result.updated_count,
        "ratePlans": [plan.model_dump(mode="json", by_alias=True) for plan in result.results],
        "errors": [error.model_dump(mode="json", by_alias=True) for error in result.errors],
        "message": (
            f"Updated {result.updated_count} of {len(payload.rate_plan_ids)} rate plans"
        ),
    }
    status_code = status.HTTP_207_MULTI_STATUS if result.is_partial else status.HTTP_200_OK
    return JSONResponse(status_code=status_code, content=body)
