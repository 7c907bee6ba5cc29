"""SQLAlchemy models for the payment audit trail."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from hotel_booking.models.base import Base


class Payment(Base):
    """
    Append-only record of a payment attempt reported by the gateway.

    Several rows per booking are normal (failed attempts followed by a retry).
    Rows are only written by the payment event reconciler. A gateway event ID
    appears on at most one row.
    """

    __tablename__ = "payments"

    id = Column(String(36), primary_key=True)
    booking_id = Column(
        String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    payment_reference = Column(String, nullable=True)
    event_id = Column(String, nullable=True, unique=True, index=True)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(20), nullable=False)  # succeeded | failed
    failure_reason = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class WebhookEvent(Base):
    """One row per verified gateway delivery, duplicates included."""

    __tablename__ = "webhook_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String, nullable=False, index=True)
    event_type = Column(String, nullable=False)
    booking_id = Column(String(36), nullable=True)
    status = Column(String(20), nullable=False)  # processed | duplicate | ignored | failed
    error = Column(String, nullable=True)
    received_at = Column(DateTime(timezone=True), nullable=False)
