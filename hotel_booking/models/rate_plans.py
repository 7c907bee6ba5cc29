"""SQLAlchemy model for time-boxed pricing rules."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.sql import false, func, true

from hotel_booking.models.base import Base, JSONType


class RatePlan(Base):
    """
    ORM model for a rate plan.

    A rate plan prices one night of a room type when the night falls inside
    [valid_from, valid_to] and, if days_of_week is set, on one of those weekdays
    (0 = Sunday ... 6 = Saturday). Higher priority wins among overlapping plans.
    The is_default plan of a room type is only used when nothing else matches.
    """

    __tablename__ = "rate_plans"
    __table_args__ = (
        CheckConstraint("valid_from <= valid_to", name="rate_plans_validity_ordered"),
        CheckConstraint("price_cents > 0", name="rate_plans_price_positive"),
        CheckConstraint("min_stay_nights >= 1", name="rate_plans_min_stay_positive"),
    )

    id = Column(String(36), primary_key=True)
    hotel_id = Column(
        String(36), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    room_type_id = Column(
        String(36), ForeignKey("room_types.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String, nullable=False)
    price_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, server_default="USD")
    valid_from = Column(Date, nullable=False)
    valid_to = Column(Date, nullable=False)
    days_of_week = Column(JSONType, nullable=True)
    priority = Column(Integer, nullable=False, server_default="0")
    min_stay_nights = Column(Integer, nullable=False, server_default="1")
    max_stay_nights = Column(Integer, nullable=True)
    is_default = Column(Boolean, nullable=False, server_default=false())
    is_active = Column(Boolean, nullable=False, server_default=true())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
