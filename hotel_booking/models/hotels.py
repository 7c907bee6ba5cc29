"""SQLAlchemy models for hotels, room types and physical rooms."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func, true

from hotel_booking.models.base import Base


class Hotel(Base):
    """
    ORM model for a hotel.

    Only the settings the booking core reads are modelled here: the currency
    used for quotes and the cancellation policy used to derive the
    cancellation cutoff of a confirmed booking.
    """

    __tablename__ = "hotels"

    id = Column(String(36), primary_key=True)
    name = Column(String, nullable=False)
    currency = Column(String(3), nullable=False, server_default="USD")
    timezone = Column(String, nullable=False, server_default="UTC")
    check_in_time = Column(String(5), nullable=False, server_default="15:00")
    cancellation_policy_hours = Column(Integer, nullable=False, server_default="24")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class RoomType(Base):
    """ORM model for a sellable room category within a hotel."""

    __tablename__ = "room_types"

    id = Column(String(36), primary_key=True)
    hotel_id = Column(
        String(36), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String, nullable=False)
    max_occupancy = Column(Integer, nullable=False, server_default="2")
    is_active = Column(Boolean, nullable=False, server_default=true())


class Room(Base):
    """ORM model for a physical room that a hold gets assigned to."""

    __tablename__ = "rooms"

    id = Column(String(36), primary_key=True)
    hotel_id = Column(
        String(36), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    room_type_id = Column(
        String(36), ForeignKey("room_types.id", ondelete="CASCADE"), nullable=False, index=True
    )
    room_number = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, server_default=true())
