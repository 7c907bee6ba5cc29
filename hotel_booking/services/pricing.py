"""Stay pricing: per-night resolution composed into an itemized quote."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional

import structlog
from sqlalchemy.engine import Engine

from hotel_booking.config import PricingSettings
from hotel_booking.db.readers.rate_plans import get_room_type, list_rate_plans_for_stay
from hotel_booking.errors import (
    InvalidStayDates,
    NoRateAvailable,
    NotApplicable,
    RoomTypeNotFound,
    ValidationError,
)
from hotel_booking.metrics import pricing_quotes
from hotel_booking.schemas.pricing import LineItem, NightlyRate, Quote
from hotel_booking.schemas.rates import RatePlanRule
from hotel_booking.services.rate_resolver import resolve_rate_plan
from hotel_booking.utils.datetime import hotel_today, iter_nights, utc_now

logger = structlog.get_logger(__name__)


def round_half_up(value: Decimal) -> int:
    """Round to the nearest minor unit, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _percent_label(rate: Decimal) -> str:
    return f"{(rate * 100).normalize():f}%"


class PricingCalculator:
    """
    Prices a stay from a set of candidate rate plans.

    Money is kept in integer minor units throughout; the discount and tax
    percentages are applied to the aggregated subtotal and rounded once each,
    never per night.

    Example:
        >>> calculator = PricingCalculator(PricingSettings())
        >>> quote = calculator.quote("rt-1", date(2026, 3, 6), date(2026, 3, 8), 2, plans)
        >>> quote.total_cents
        28400
    """

    def __init__(self, settings: PricingSettings) -> None:
        self.settings = settings

    def discount_rate_for(self, nights: int) -> Decimal:
        for min_nights, rate in self.settings.discount_tiers:
            if nights >= min_nights:
                return rate
        return Decimal("0")

    def resolve_night(
        self,
        room_type_id: str,
        night: date,
        nights: int,
        rate_plans: Sequence[RatePlanRule],
    ) -> RatePlanRule:
        """
        Resolve one night, skipping plans whose stay-length limits exclude this stay.

        A plan that wins on precedence but does not allow a stay of ``nights``
        is excluded and resolution re-runs, falling through to the next-best plan
        and finally the room type's default.
        """
        excluded: set[str] = set()
        while True:
            try:
                plan = resolve_rate_plan(room_type_id, night, rate_plans, excluded)
            except NotApplicable as e:
                raise NoRateAvailable(
                    f"No rate available for {night.isoformat()}", code="NO_RATE_AVAILABLE"
                ) from e
            if plan.allows_stay_length(nights):
                return plan
            logger.debug(
                "rate_plan_stay_length_ineligible",
                rate_plan_id=plan.id,
                night=night.isoformat(),
                nights=nights,
                min_stay_nights=plan.min_stay_nights,
            )
            excluded.add(plan.id)

    def quote(
        self,
        room_type_id: str,
        check_in: date,
        check_out: date,
        guests: int,
        rate_plans: Sequence[RatePlanRule],
    ) -> Quote:
        """
        Build an itemized quote for ``[check_in, check_out)``.

        Raises:
            InvalidStayDates: If check_out is not after check_in
            ValidationError: If guests is below one
            NoRateAvailable: If any night cannot be priced (no partial quotes)
        """
        if check_out <= check_in:
            raise InvalidStayDates("Check-out date must be after check-in date")
        if guests < 1:
            raise ValidationError("At least one guest is required")

        nights = (check_out - check_in).days
        nightly: list[NightlyRate] = []
        for night in iter_nights(check_in, check_out):
            plan = self.resolve_night(room_type_id, night, nights, rate_plans)
            nightly.append(
                NightlyRate(night=night, rate_plan_id=plan.id, price_cents=plan.price_cents)
            )

        subtotal = sum(rate.price_cents for rate in nightly)
        discount_rate = self.discount_rate_for(nights)
        discount = round_half_up(Decimal(subtotal) * discount_rate)
        tax = round_half_up(Decimal(subtotal - discount) * self.settings.tax_rate)
        fee = self.settings.service_fee_cents
        total = subtotal - discount + tax + fee

        night_label = "night" if nights == 1 else "nights"
        line_items = [
            LineItem(
                type="room",
                description=f"Room rate ({nights} {night_label})",
                amount_cents=subtotal,
            )
        ]
        if discount > 0:
            line_items.append(
                LineItem(
                    type="discount",
                    description=f"Length of stay discount ({_percent_label(discount_rate)})",
                    amount_cents=-discount,
                )
            )
        line_items.append(
            LineItem(
                type="tax",
                description=f"Taxes ({_percent_label(self.settings.tax_rate)})",
                amount_cents=tax,
            )
        )
        line_items.append(LineItem(type="fee", description="Service fee", amount_cents=fee))

        return Quote(
            room_type_id=room_type_id,
            check_in=check_in,
            check_out=check_out,
            nights=nights,
            guests=guests,
            currency=self.settings.currency,
            nightly_rates=nightly,
            subtotal_cents=subtotal,
            discount_rate=discount_rate,
            discount_cents=discount,
            tax_cents=tax,
            fee_cents=fee,
            total_cents=total,
            line_items=line_items,
        )


def quote_stay(
    engine: Engine,
    calculator: PricingCalculator,
    room_type_id: str,
    check_in: date,
    check_out: date,
    guests: int,
    hotel_id: Optional[str] = None,
    clock: Callable[[], datetime] = utc_now,
) -> Quote:
    """
    Load a room type's rate plans and price a stay.

    Rate plans are read at whatever version is visible now; concurrent bulk
    updates do not block quoting. "Today" is the current date in the hotel's
    timezone.

    Raises:
        RoomTypeNotFound: If the room type is unknown, inactive or belongs to
            a hotel other than ``hotel_id``
        ValidationError: If guests exceed the room type's occupancy or the
            stay starts before today (code PAST_CHECK_IN)
        PricingError: As raised by PricingCalculator.quote
    """
    try:
        with engine.connect() as conn:
            room_type = get_room_type(conn, room_type_id)
            if (
                room_type is None
                or not room_type["is_active"]
                or (hotel_id is not None and room_type["hotel_id"] != hotel_id)
            ):
                raise RoomTypeNotFound(f"Room type {room_type_id} not found")
            if guests > room_type["max_occupancy"]:
                raise ValidationError(
                    f"Room type {room_type_id} sleeps at most {room_type['max_occupancy']} guests"
                )
            if check_in < hotel_today(clock(), room_type["timezone"]):
                raise ValidationError(
                    "Check-in date cannot be in the past", code="PAST_CHECK_IN"
                )
            plans = list_rate_plans_for_stay(conn, room_type_id, check_in, check_out)

        quote = calculator.quote(room_type_id, check_in, check_out, guests, plans)
    except Exception as e:
        pricing_quotes.labels(status=getattr(e, "code", "error").lower()).inc()
        raise

    pricing_quotes.labels(status="success").inc()
    logger.info(
        "stay_quoted",
        room_type_id=room_type_id,
        check_in=check_in.isoformat(),
        check_out=check_out.isoformat(),
        nights=quote.nights,
        total_cents=quote.total_cents,
    )
    return quote.model_copy(
        update={"hotel_id": room_type["hotel_id"], "currency": room_type["currency"]}
    )
