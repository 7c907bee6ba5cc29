from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import Select, and_, case, func, or_, select
from sqlalchemy.engine import Connection

from hotel_booking.models.bookings import Booking, BookingStatus
from hotel_booking.models.hotels import Hotel, Room

# Bookings in these states no longer occupy their room
RELEASED_STATUSES = (
    BookingStatus.CANCELLED.value,
    BookingStatus.EXPIRED.value,
    BookingStatus.NO_SHOW.value,
)


def get_booking(conn: Connection, booking_id: str) -> Optional[dict[str, Any]]:
    """
    Fetch a booking by ID.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        booking_id (str): Booking ID.

    Returns:
        Optional[dict[str, Any]]: Booking columns, or None if not found.
    """
    row = conn.execute(select(Booking).where(Booking.id == booking_id)).mappings().fetchone()
    return dict(row) if row else None


def get_booking_by_confirmation_code(conn: Connection, code: str) -> Optional[dict[str, Any]]:
    row = (
        conn.execute(select(Booking).where(Booking.confirmation_code == code.upper()))
        .mappings()
        .fetchone()
    )
    return dict(row) if row else None


def confirmation_code_exists(conn: Connection, code: str) -> bool:
    result = conn.execute(select(Booking.id).where(Booking.confirmation_code == code))
    return result.fetchone() is not None


def _occupied_room_ids(
    room_type_id: str, check_in: date, check_out: date, now: datetime
) -> Select:
    """Rooms of a type held or booked for any night of ``[check_in, check_out)``."""
    return (
        select(Booking.room_id)
        .where(Booking.room_type_id == room_type_id)
        .where(Booking.status.not_in(RELEASED_STATUSES))
        .where(Booking.check_in_date < check_out)
        .where(Booking.check_out_date > check_in)
        .where(
            or_(
                Booking.status != BookingStatus.PENDING.value,
                Booking.soft_hold_expires_at > now,
            )
        )
    )


def find_available_room(
    conn: Connection,
    room_type_id: str,
    check_in: date,
    check_out: date,
    now: datetime,
) -> Optional[dict[str, Any]]:
    """
    Pick the first active room of a type with no booking overlapping the stay.

    A pending hold whose expiry has already passed does not block the room,
    even if the sweeper has not marked it expired yet. The chosen room row is
    locked (skipping rooms locked by a concurrent hold) so call this inside the
    transaction that inserts the booking.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        room_type_id (str): Room type requested.
        check_in (date): First night.
        check_out (date): Departure date.
        now (datetime): Current time, used to ignore lapsed holds.

    Returns:
        Optional[dict[str, Any]]: Room id, hotel_id and room_number, or None if fully booked.
    """
    occupied = _occupied_room_ids(room_type_id, check_in, check_out, now)
    row = (
        conn.execute(
            select(Room.id, Room.hotel_id, Room.room_number)
            .where(Room.room_type_id == room_type_id)
            .where(Room.is_active == True)  # noqa: E712
            .where(Room.id.not_in(occupied))
            .order_by(Room.room_number, Room.id)
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        .mappings()
        .fetchone()
    )
    return dict(row) if row else None


def count_room_availability(
    conn: Connection,
    room_type_id: str,
    check_in: date,
    check_out: date,
    now: datetime,
) -> tuple[int, int]:
    """
    Count the active rooms of a type and how many are free for a whole stay.

    Uses the same occupancy rule as find_available_room, without locking.

    Returns:
        tuple[int, int]: (active rooms, free rooms)
    """
    occupied = _occupied_room_ids(room_type_id, check_in, check_out, now)
    free = func.sum(case((Room.id.not_in(occupied), 1), else_=0))
    total, available = conn.execute(
        select(func.count(), free)
        .select_from(Room)
        .where(Room.room_type_id == room_type_id)
        .where(Room.is_active == True)  # noqa: E712
    ).one()
    return int(total), int(available or 0)


def list_expired_hold_ids(
    conn: Connection, now: datetime, limit: Optional[int] = None
) -> list[str]:
    """
    List pending bookings whose soft hold has lapsed, oldest expiry first.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        now (datetime): Cutoff; holds expiring strictly before it are returned.
        limit (Optional[int]): Maximum number of IDs to return.

    Returns:
        list[str]: Booking IDs.
    """
    stmt = (
        select(Booking.id)
        .where(
            and_(
                Booking.status == BookingStatus.PENDING.value,
                Booking.soft_hold_expires_at < now,
            )
        )
        .order_by(Booking.soft_hold_expires_at, Booking.id)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return [row[0] for row in conn.execute(stmt)]


def get_hotel_policy(conn: Connection, hotel_id: str) -> Optional[dict[str, Any]]:
    """Fetch a hotel's name, currency, timezone, check-in time and cancellation policy."""
    row = (
        conn.execute(
            select(
                Hotel.id,
                Hotel.name,
                Hotel.currency,
                Hotel.timezone,
                Hotel.check_in_time,
                Hotel.cancellation_policy_hours,
            ).where(Hotel.id == hotel_id)
        )
        .mappings()
        .fetchone()
    )
    return dict(row) if row else None
