"""Schemas for rate plans and bulk rate updates."""

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class RatePlanRule(BaseModel):
    """
    Read-only view of a rate plan as used by rate resolution.

    days_of_week uses 0 = Sunday ... 6 = Saturday; None means every day.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    room_type_id: str
    hotel_id: Optional[str] = None
    name: str = ""
    price_cents: int
    valid_from: date
    valid_to: date
    days_of_week: Optional[tuple[int, ...]] = None
    priority: int = 0
    min_stay_nights: int = 1
    max_stay_nights: Optional[int] = None
    is_default: bool = False
    is_active: bool = True

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _empty_means_every_day(cls, value: Any) -> Any:
        if value is not None and len(value) == 0:
            return None
        return value

    @property
    def has_day_restriction(self) -> bool:
        return self.days_of_week is not None

    def allows_stay_length(self, nights: int) -> bool:
        """Whether a stay of ``nights`` satisfies this plan's length restrictions."""
        if nights < self.min_stay_nights:
            return False
        if self.max_stay_nights is not None and nights > self.max_stay_nights:
            return False
        return True


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RatePriceUpdate(_CamelModel):
    rate_plan_id: str
    new_price: int = Field(..., description="New nightly price in minor currency units")


class BulkRateUpdateRequest(_CamelModel):
    """
    Body of POST /rates/bulk-update.

    Example:
        {
            "ratePlanIds": ["rp-1", "rp-2"],
            "startDate": "2026-06-01",
            "endDate": "2026-08-31",
            "updates": [{"ratePlanId": "rp-1", "newPrice": 15000}, ...]
        }
    """

    rate_plan_ids: list[str]
    start_date: date
    end_date: date
    updates: list[RatePriceUpdate]


class UpdatedRatePlan(_CamelModel):
    id: str
    price_cents: int
    valid_from: date
    valid_to: date


class BulkRateUpdateError(_CamelModel):
    rate_plan_id: str
    code: str  # not_found | forbidden | invalid_value | error
    message: str


class BulkRateUpdateResult(_CamelModel):
    updated_count: int
    results: list[UpdatedRatePlan]
    errors: list[BulkRateUpdateError]

    @property
    def is_partial(self) -> bool:
        return bool(self.errors)
