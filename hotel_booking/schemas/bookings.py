"""Schemas for bookings and guarded transition outcomes."""

from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class GuestContact(BaseModel):
    """Guest contact details, snapshotted onto the booking."""

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: Optional[str] = None


class HoldCreatePayload(BaseModel):
    """Body of POST /bookings."""

    room_type_id: str
    check_in: date
    check_out: date
    guests: int = Field(1, ge=1)
    guest: GuestContact
    hold_minutes: Optional[int] = Field(None, description="Overrides the default hold duration")


class CancelPayload(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class ExtendHoldPayload(BaseModel):
    additional_minutes: int = Field(10, ge=1)


class BookingView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    confirmation_code: str
    hotel_id: str
    room_id: str
    room_type_id: str
    check_in_date: date
    check_out_date: date
    guest_name: str
    guest_email: str
    num_guests: int
    status: str
    payment_status: str
    soft_hold_expires_at: Optional[datetime] = None
    total_cents: int
    currency: str
    payment_reference: Optional[str] = None
    price_snapshot: dict[str, Any]


class OutcomeStatus(str, enum.Enum):
    APPLIED = "applied"
    NOOP = "noop"
    FAILED = "failed"


class TransitionOutcome(BaseModel):
    """
    Result of a guarded booking transition.

    NOOP means the guard did not match: another actor already moved the
    booking. Callers treat it as success.
    """

    booking_id: str
    action: str
    status: OutcomeStatus
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    error: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.status is OutcomeStatus.APPLIED

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.FAILED
