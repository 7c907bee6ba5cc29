"""
Per-night rate plan resolution.

Given every candidate rate plan of a room type, pick the single plan that
prices one calendar night. Resolution is pure and is re-run for each night of a
stay, so a stay may be priced by several plans (e.g. a weekend plan and a
standard plan).
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from datetime import date

from hotel_booking.errors import NotApplicable
from hotel_booking.schemas.rates import RatePlanRule
from hotel_booking.utils.datetime import weekday_sunday_first


def matches_night(plan: RatePlanRule, night: date) -> bool:
    """Whether a plan's validity window and weekday restriction cover ``night``."""
    if not plan.valid_from <= night <= plan.valid_to:
        return False
    if plan.days_of_week is not None and weekday_sunday_first(night) not in plan.days_of_week:
        return False
    return True


def _precedence(plan: RatePlanRule) -> tuple[int, int, str]:
    # min() over this key: highest priority, then day-restricted, then smallest id
    return (-plan.priority, 0 if plan.has_day_restriction else 1, plan.id)


def resolve_rate_plan(
    room_type_id: str,
    night: date,
    candidates: Iterable[RatePlanRule],
    excluded_ids: Collection[str] = (),
) -> RatePlanRule:
    """
    Select the winning rate plan for a room type on a single night.

    Args:
        room_type_id: Room type being priced
        night: Calendar date of the night
        candidates: Rate plans to choose from (other room types are ignored)
        excluded_ids: Plans already ruled out for this stay, e.g. by minimum stay

    Returns:
        RatePlanRule: The winning plan

    Raises:
        NotApplicable: If no dated plan matches and the room type has no usable default
    """
    eligible = [
        plan
        for plan in candidates
        if plan.room_type_id == room_type_id
        and plan.is_active
        and plan.id not in excluded_ids
    ]

    dated = [plan for plan in eligible if not plan.is_default and matches_night(plan, night)]
    if dated:
        return min(dated, key=_precedence)

    defaults = [plan for plan in eligible if plan.is_default]
    if defaults:
        return min(defaults, key=lambda plan: plan.id)

    raise NotApplicable(
        f"No rate plan applies to room type {room_type_id} on {night.isoformat()}"
    )
