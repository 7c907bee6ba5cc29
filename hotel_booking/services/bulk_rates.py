"""Bulk repricing of rate plans with per-item results."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

import structlog
from sqlalchemy.engine import Engine

from hotel_booking.db.readers.rate_plans import get_rate_plan
from hotel_booking.db.writers.rate_plans import update_rate_plan_price
from hotel_booking.errors import ValidationError
from hotel_booking.metrics import rate_plan_bulk_updates
from hotel_booking.schemas.rates import (
    BulkRateUpdateError,
    BulkRateUpdateRequest,
    BulkRateUpdateResult,
    UpdatedRatePlan,
)
from hotel_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def validate_bulk_request(request: BulkRateUpdateRequest) -> None:
    """
    Reject structurally invalid requests before anything is written.

    Raises:
        ValidationError: On the first structural problem found
    """
    if not request.rate_plan_ids:
        raise ValidationError("ratePlanIds must not be empty")
    if request.start_date >= request.end_date:
        raise ValidationError("startDate must be before endDate")

    listed = set(request.rate_plan_ids)
    for update in request.updates:
        if update.new_price <= 0:
            raise ValidationError(
                f"newPrice for rate plan {update.rate_plan_id} must be positive"
            )
        if update.rate_plan_id not in listed:
            raise ValidationError(
                f"Update for rate plan {update.rate_plan_id} is not listed in ratePlanIds"
            )


class BulkRateUpdater:
    def __init__(self, engine: Engine, clock: Callable[[], datetime] = utc_now) -> None:
        self.engine = engine
        self.clock = clock

    def apply(
        self, request: BulkRateUpdateRequest, hotel_id: Optional[str] = None
    ) -> BulkRateUpdateResult:
        """
        Reprice each listed rate plan in its own transaction.

        One failing plan never rolls back another. Existing bookings keep the
        price snapshot they were created with.

        Args:
            request: Plans to touch, the new validity window and their prices
            hotel_id: When given, plans owned by another hotel are refused

        Returns:
            BulkRateUpdateResult: Updated plans and per-item errors

        Raises:
            ValidationError: If the request is structurally invalid (nothing written)
        """
        validate_bulk_request(request)

        prices = {update.rate_plan_id: update.new_price for update in request.updates}
        results: list[UpdatedRatePlan] = []
        errors: list[BulkRateUpdateError] = []

        for rate_plan_id in request.rate_plan_ids:
            try:
                error = self._apply_one(request, rate_plan_id, prices.get(rate_plan_id), hotel_id)
            except Exception as e:
                logger.exception("rate_plan_update_failed", rate_plan_id=rate_plan_id)
                error = BulkRateUpdateError(rate_plan_id=rate_plan_id, code="error", message=str(e))

            if error is None:
                results.append(
                    UpdatedRatePlan(
                        id=rate_plan_id,
                        price_cents=prices[rate_plan_id],
                        valid_from=request.start_date,
                        valid_to=request.end_date,
                    )
                )
                rate_plan_bulk_updates.labels(status="updated").inc()
            else:
                errors.append(error)
                rate_plan_bulk_updates.labels(status=error.code).inc()

        logger.info(
            "bulk_rate_update_completed",
            hotel_id=hotel_id,
            requested=len(request.rate_plan_ids),
            updated=len(results),
            failed=len(errors),
        )
        return BulkRateUpdateResult(updated_count=len(results), results=results, errors=errors)

    def _apply_one(
        self,
        request: BulkRateUpdateRequest,
        rate_plan_id: str,
        new_price: Optional[int],
        hotel_id: Optional[str],
    ) -> Optional[BulkRateUpdateError]:
        with self.engine.begin() as conn:
            plan = get_rate_plan(conn, rate_plan_id)
            if plan is None:
                return BulkRateUpdateError(
                    rate_plan_id=rate_plan_id,
                    code="not_found",
                    message=f"Rate plan {rate_plan_id} not found",
                )
            if hotel_id is not None and plan.hotel_id != hotel_id:
                return BulkRateUpdateError(
                    rate_plan_id=rate_plan_id,
                    code="forbidden",
                    message=f"Rate plan {rate_plan_id} belongs to another hotel",
                )
            if new_price is None:
                return BulkRateUpdateError(
                    rate_plan_id=rate_plan_id,
                    code="invalid_value",
                    message=f"No price supplied for rate plan {rate_plan_id}",
                )

            update_rate_plan_price(
                conn,
                rate_plan_id,
                new_price,
                request.start_date,
                request.end_date,
                self.clock(),
            )

        logger.debug("rate_plan_repriced", rate_plan_id=rate_plan_id, price_cents=new_price)
        return None
