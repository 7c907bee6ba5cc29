"""
Unit tests for per-night rate plan resolution.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

import pytest

from hotel_booking.errors import NotApplicable
from hotel_booking.schemas.rates import RatePlanRule
from hotel_booking.services.rate_resolver import matches_night, resolve_rate_plan

FRIDAY = date(2026, 3, 6)
SATURDAY = FRIDAY + timedelta(days=1)
SUNDAY = FRIDAY + timedelta(days=2)


def plan(plan_id: str, **overrides: Any) -> RatePlanRule:
    values: dict[str, Any] = {
        "id": plan_id,
        "room_type_id": "rt-1",
        "price_cents": 10000,
        "valid_from": date(2026, 1, 1),
        "valid_to": date(2026, 12, 31),
    }
    values.update(overrides)
    return RatePlanRule(**values)


@pytest.mark.unit
def test_matches_night_respects_validity_window() -> None:
    """Test that nights outside valid_from..valid_to never match."""
    spring = plan("rp-spring", valid_from=date(2026, 3, 1), valid_to=date(2026, 3, 31))

    assert matches_night(spring, date(2026, 3, 1))
    assert matches_night(spring, date(2026, 3, 31))
    assert not matches_night(spring, date(2026, 2, 28))
    assert not matches_night(spring, date(2026, 4, 1))


@pytest.mark.unit
def test_matches_night_uses_sunday_first_weekdays() -> None:
    """Test that 5 is Friday and 6 is Saturday in days_of_week."""
    weekend = plan("rp-weekend", days_of_week=[5, 6])

    assert matches_night(weekend, FRIDAY)
    assert matches_night(weekend, SATURDAY)
    assert not matches_night(weekend, SUNDAY)


@pytest.mark.unit
def test_empty_days_of_week_means_every_day() -> None:
    """Test that an empty weekday list is treated as unrestricted."""
    every_day = plan("rp-any", days_of_week=[])

    assert every_day.days_of_week is None
    assert matches_night(every_day, SUNDAY)


@pytest.mark.unit
def test_higher_priority_wins() -> None:
    """Test that priority outranks every other tie-breaker."""
    low = plan("rp-a", priority=1, days_of_week=[5])
    high = plan("rp-z", priority=5)

    assert resolve_rate_plan("rt-1", FRIDAY, [low, high]).id == "rp-z"


@pytest.mark.unit
def test_day_restricted_plan_wins_tie_on_priority() -> None:
    """Test that a weekday-restricted plan beats an unrestricted one of equal priority."""
    unrestricted = plan("rp-a", priority=2)
    friday_only = plan("rp-b", priority=2, days_of_week=[5])

    assert resolve_rate_plan("rt-1", FRIDAY, [unrestricted, friday_only]).id == "rp-b"


@pytest.mark.unit
def test_smallest_id_breaks_remaining_ties() -> None:
    """Test that resolution is deterministic regardless of candidate order."""
    first = plan("rp-001")
    second = plan("rp-002")

    assert resolve_rate_plan("rt-1", FRIDAY, [second, first]).id == "rp-001"
    assert resolve_rate_plan("rt-1", FRIDAY, [first, second]).id == "rp-001"


@pytest.mark.unit
def test_default_plan_used_when_no_dated_plan_matches() -> None:
    """Test fallback to the room type's default plan."""
    weekday_only = plan("rp-weekday", days_of_week=[1, 2, 3, 4])
    default = plan("rp-default", is_default=True, price_cents=9000)

    assert resolve_rate_plan("rt-1", SATURDAY, [weekday_only, default]).id == "rp-default"


@pytest.mark.unit
def test_default_plan_does_not_compete_with_matching_dated_plan() -> None:
    """Test that a default plan is only a fallback, even with higher priority."""
    dated = plan("rp-dated")
    default = plan("rp-default", is_default=True, priority=100)

    assert resolve_rate_plan("rt-1", FRIDAY, [default, dated]).id == "rp-dated"


@pytest.mark.unit
def test_other_room_types_and_inactive_plans_are_ignored() -> None:
    """Test that only active plans of the requested room type are candidates."""
    other_room = plan("rp-other", room_type_id="rt-2", priority=10)
    inactive = plan("rp-inactive", is_active=False, priority=10)
    standard = plan("rp-standard")

    assert resolve_rate_plan("rt-1", FRIDAY, [other_room, inactive, standard]).id == "rp-standard"


@pytest.mark.unit
def test_excluded_plans_are_skipped() -> None:
    """Test that excluded ids fall through to the next-best plan."""
    weekend = plan("rp-weekend", days_of_week=[5, 6], priority=1)
    standard = plan("rp-standard")

    resolved = resolve_rate_plan("rt-1", FRIDAY, [weekend, standard], excluded_ids={"rp-weekend"})

    assert resolved.id == "rp-standard"


@pytest.mark.unit
def test_not_applicable_without_match_or_default() -> None:
    """Test that a night with no matching plan and no default raises NotApplicable."""
    spring = plan("rp-spring", valid_from=date(2026, 4, 1), valid_to=date(2026, 4, 30))

    with pytest.raises(NotApplicable):
        resolve_rate_plan("rt-1", FRIDAY, [spring])


@pytest.mark.unit
def test_not_applicable_with_no_candidates() -> None:
    """Test that an empty candidate list raises NotApplicable."""
    with pytest.raises(NotApplicable):
        resolve_rate_plan("rt-1", FRIDAY, [])
