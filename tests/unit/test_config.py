"""
Unit tests for configuration parsing.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from hotel_booking.config import HoldSettings, PricingSettings, parse_discount_tiers


@pytest.mark.unit
def test_parse_discount_tiers_orders_longest_stay_first() -> None:
    assert parse_discount_tiers("3:5,7:15") == ((7, Decimal("0.15")), (3, Decimal("0.05")))


@pytest.mark.unit
def test_parse_discount_tiers_ignores_blank_entries() -> None:
    assert parse_discount_tiers(" 14 : 20 , ,") == ((14, Decimal("0.2")),)
    assert parse_discount_tiers("") == ()


@pytest.mark.unit
def test_default_settings() -> None:
    pricing = PricingSettings()
    holds = HoldSettings()

    assert pricing.tax_rate == Decimal("0.10")
    assert pricing.service_fee_cents == 2000
    assert pricing.discount_tiers == parse_discount_tiers("7:15,3:5")
    assert holds.default_minutes == 15
    assert (holds.min_minutes, holds.max_minutes) == (1, 60)
    assert holds.max_extension_minutes == 30
