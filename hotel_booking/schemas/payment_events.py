"""
Tagged decoding of inbound payment gateway events.

The gateway posts an envelope of the form::

    {
        "id": "evt_123",
        "type": "payment.succeeded",
        "data": {
            "object": {
                "id": "pi_123",
                "amount": 67450,
                "currency": "usd",
                "metadata": {"booking_id": "..."},
                "last_payment_error": {"message": "card declined"}
            }
        }
    }

parse_payment_event() validates the envelope and returns exactly one of
PaymentSucceeded, PaymentFailed or Unrecognized.
"""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

SUCCEEDED_TYPES = frozenset({"payment.succeeded", "payment_intent.succeeded"})
FAILED_TYPES = frozenset({"payment.failed", "payment_intent.payment_failed"})


class _PaymentError(BaseModel):
    message: Optional[str] = None


class _PaymentObject(BaseModel):
    id: str
    amount: int = Field(0, ge=0)
    currency: str = "usd"
    metadata: dict[str, Any] = Field(default_factory=dict)
    last_payment_error: Optional[_PaymentError] = None


class _EventData(BaseModel):
    object: _PaymentObject


class _Envelope(BaseModel):
    id: str
    type: str


class _PaymentEnvelope(_Envelope):
    data: _EventData


class PaymentSucceeded(BaseModel):
    kind: Literal["succeeded"] = "succeeded"
    event_id: str
    event_type: str
    payment_reference: str
    booking_id: Optional[str]
    amount_cents: int
    currency: str


class PaymentFailed(BaseModel):
    kind: Literal["failed"] = "failed"
    event_id: str
    event_type: str
    payment_reference: str
    booking_id: Optional[str]
    amount_cents: int
    currency: str
    failure_reason: str


class Unrecognized(BaseModel):
    kind: Literal["unrecognized"] = "unrecognized"
    event_id: str
    event_type: str


PaymentEvent = Union[PaymentSucceeded, PaymentFailed, Unrecognized]


def _booking_id(metadata: dict[str, Any]) -> Optional[str]:
    value = metadata.get("booking_id") or metadata.get("reservationId")
    return str(value) if value else None


def parse_payment_event(payload: dict[str, Any]) -> PaymentEvent:
    """
    Decode a gateway event into its tagged variant.

    Raises:
        pydantic.ValidationError: If the envelope, or the payment object of a
            recognized event type, does not match the expected schema.
    """
    envelope = _Envelope.model_validate(payload)

    if envelope.type not in SUCCEEDED_TYPES | FAILED_TYPES:
        return Unrecognized(event_id=envelope.id, event_type=envelope.type)

    event = _PaymentEnvelope.model_validate(payload)
    obj = event.data.object
    common = {
        "event_id": event.id,
        "event_type": event.type,
        "payment_reference": obj.id,
        "booking_id": _booking_id(obj.metadata),
        "amount_cents": obj.amount,
        "currency": obj.currency.upper(),
    }

    if event.type in SUCCEEDED_TYPES:
        return PaymentSucceeded(**common)

    reason = (obj.last_payment_error.message if obj.last_payment_error else None) or (
        "Payment failed"
    )
    return PaymentFailed(**common, failure_reason=reason)
