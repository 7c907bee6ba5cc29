"""Schemas for priced quotes."""

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class NightlyRate(BaseModel):
    model_config = ConfigDict(frozen=True)

    night: date
    rate_plan_id: str
    price_cents: int


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["room", "discount", "tax", "fee"]
    description: str
    amount_cents: int


class Quote(BaseModel):
    """
    Itemized price of a stay.

    All amounts are integers in minor currency units. line_items are ordered
    room charge, discount (negative, only when non-zero), tax, fee.
    """

    model_config = ConfigDict(frozen=True)

    room_type_id: str
    check_in: date
    check_out: date
    nights: int
    guests: int
    currency: str
    nightly_rates: list[NightlyRate]
    subtotal_cents: int
    discount_rate: Decimal
    discount_cents: int
    tax_cents: int
    fee_cents: int
    total_cents: int
    line_items: list[LineItem]
    hotel_id: Optional[str] = None
