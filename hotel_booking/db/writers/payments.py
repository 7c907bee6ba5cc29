import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import insert, select
from sqlalchemy.engine import Connection

from hotel_booking.models.payments import Payment, WebhookEvent


def insert_payment(
    conn: Connection,
    booking_id: str,
    payment_reference: Optional[str],
    event_id: Optional[str],
    amount_cents: int,
    currency: str,
    status: str,
    created_at: datetime,
    failure_reason: Optional[str] = None,
) -> str:
    """
    Append a payment attempt to the audit trail.

    Args:
        conn (Connection): SQLAlchemy DB connection (within a transaction).
        booking_id (str): Booking the payment belongs to.
        payment_reference (Optional[str]): Gateway payment intent ID.
        event_id (Optional[str]): Gateway event that reported the attempt.
        amount_cents (int): Amount in minor units.
        currency (str): ISO currency code.
        status (str): "succeeded" or "failed".
        created_at (datetime): Time the attempt was recorded.
        failure_reason (Optional[str]): Gateway reason for a failed attempt.

    Returns:
        str: ID of the new payment row.
    """
    payment_id = str(uuid.uuid4())
    conn.execute(
        insert(Payment).values(
            id=payment_id,
            booking_id=booking_id,
            payment_reference=payment_reference,
            event_id=event_id,
            amount_cents=amount_cents,
            currency=currency,
            status=status,
            failure_reason=failure_reason,
            created_at=created_at,
        )
    )
    return payment_id


def payment_event_recorded(conn: Connection, event_id: str) -> bool:
    """Whether a payment row already exists for a gateway event ID."""
    result = conn.execute(select(Payment.id).where(Payment.event_id == event_id).limit(1))
    return result.fetchone() is not None


def insert_webhook_event(
    conn: Connection,
    event_id: str,
    event_type: str,
    status: str,
    received_at: datetime,
    booking_id: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    conn.execute(
        insert(WebhookEvent).values(
            event_id=event_id,
            event_type=event_type,
            booking_id=booking_id,
            status=status,
            error=error,
            received_at=received_at,
        )
    )
