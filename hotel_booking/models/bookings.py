# models/bookings.py

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.sql import func

from hotel_booking.models.base import Base, JSONType


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    NO_SHOW = "no_show"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class Booking(Base):
    """
    ORM model for a reservation.

    A booking starts life as a soft hold (status=pending with a
    soft_hold_expires_at deadline) and is resolved by exactly one of payment
    confirmation, hold expiry or cancellation. price_snapshot is the itemized
    quote captured at creation; later rate plan edits never touch it.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="bookings_dates_valid"),
        CheckConstraint("num_guests > 0", name="bookings_guests_positive"),
        CheckConstraint(
            "(status = 'pending' AND soft_hold_expires_at IS NOT NULL) OR "
            "(status != 'pending' AND soft_hold_expires_at IS NULL)",
            name="bookings_soft_hold_only_when_pending",
        ),
        Index(
            "idx_bookings_soft_hold_expires",
            "soft_hold_expires_at",
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id = Column(String(36), primary_key=True)
    confirmation_code = Column(String(12), nullable=False, unique=True, index=True)
    hotel_id = Column(
        String(36), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="RESTRICT"), nullable=False)
    room_type_id = Column(
        String(36), ForeignKey("room_types.id", ondelete="RESTRICT"), nullable=False
    )
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    guest_name = Column(String, nullable=False)
    guest_email = Column(String, nullable=False)
    guest_phone = Column(String, nullable=True)
    num_guests = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, server_default=BookingStatus.PENDING.value)
    payment_status = Column(
        String(20), nullable=False, server_default=PaymentStatus.PENDING.value
    )
    soft_hold_expires_at = Column(DateTime(timezone=True), nullable=True)
    price_snapshot = Column(JSONType, nullable=False)
    total_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, server_default="USD")
    payment_reference = Column(String, nullable=True, index=True)
    cancellation_reason = Column(String, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    checked_out_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class BookingStateLog(Base):
    """Audit row written in the same transaction as every applied status change."""

    __tablename__ = "booking_state_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(
        String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_status = Column(String(20), nullable=False)
    to_status = Column(String(20), nullable=False)
    reason = Column(String, nullable=True)
    changed_at = Column(DateTime(timezone=True), nullable=False)
