from datetime import datetime
from typing import Any, Optional

from sqlalchemy import insert, update
from sqlalchemy.engine import Connection
from sqlalchemy.sql.elements import ColumnElement

from hotel_booking.models.bookings import Booking, BookingStateLog


def insert_booking(conn: Connection, row: dict[str, Any]) -> None:
    """
    Insert a new booking row.

    Args:
        conn (Connection): SQLAlchemy DB connection (within a transaction).
        row (dict[str, Any]): Complete booking column values.
    """
    conn.execute(insert(Booking).values(**row))


def guarded_update(
    conn: Connection,
    booking_id: str,
    expected_status: str,
    values: dict[str, Any],
    extra_conditions: tuple[ColumnElement[bool], ...] = (),
) -> int:
    """
    Update a booking only if it is still in ``expected_status``.

    This is the single concurrency primitive for booking transitions: the
    status check and the write happen in one statement, so of two racing
    actors exactly one sees a matched row.

    Args:
        conn (Connection): SQLAlchemy DB connection (within a transaction).
        booking_id (str): Booking to update.
        expected_status (str): Status the row must currently have.
        values (dict[str, Any]): Columns to set.
        extra_conditions: Additional WHERE clauses (e.g. hold already lapsed).

    Returns:
        int: Number of rows updated (0 when the guard did not match).
    """
    stmt = (
        update(Booking)
        .where(Booking.id == booking_id)
        .where(Booking.status == expected_status)
        .where(*extra_conditions)
        .values(**values)
    )
    return conn.execute(stmt).rowcount


def insert_state_log(
    conn: Connection,
    booking_id: str,
    from_status: str,
    to_status: str,
    changed_at: datetime,
    reason: Optional[str] = None,
) -> None:
    conn.execute(
        insert(BookingStateLog).values(
            booking_id=booking_id,
            from_status=from_status,
            to_status=to_status,
            reason=reason,
            changed_at=changed_at,
        )
    )

