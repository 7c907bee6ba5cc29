from datetime import date
from typing import Any, Optional

from sqlalchemy import or_, select
from sqlalchemy.engine import Connection

from hotel_booking.models.hotels import Hotel, RoomType
from hotel_booking.models.rate_plans import RatePlan
from hotel_booking.schemas.rates import RatePlanRule


def get_room_type(conn: Connection, room_type_id: str) -> Optional[dict[str, Any]]:
    """
    Fetch a room type together with its hotel's currency.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        room_type_id (str): Room type ID.

    Returns:
        Optional[dict[str, Any]]: Room type fields plus the hotel's "currency" and
        "timezone", or None if not found.
    """
    row = (
        conn.execute(
            select(
                RoomType.id,
                RoomType.hotel_id,
                RoomType.name,
                RoomType.max_occupancy,
                RoomType.is_active,
                Hotel.currency,
                Hotel.timezone,
            )
            .join(Hotel, Hotel.id == RoomType.hotel_id)
            .where(RoomType.id == room_type_id)
        )
        .mappings()
        .fetchone()
    )
    return dict(row) if row else None


def list_active_room_types(conn: Connection, hotel_id: str) -> list[dict[str, Any]]:
    result = conn.execute(
        select(RoomType.id, RoomType.name, RoomType.max_occupancy)
        .where(RoomType.hotel_id == hotel_id)
        .where(RoomType.is_active == True)  # noqa: E712
        .order_by(RoomType.name, RoomType.id)
    ).mappings()
    return [dict(row) for row in result]


def list_rate_plans_for_stay(
    conn: Connection, room_type_id: str, check_in: date, check_out: date
) -> list[RatePlanRule]:
    """
    Load the active rate plans of a room type that could price any night of a stay.

    Dated plans are filtered to those overlapping [check_in, check_out); default
    plans are always included since they price nights no dated plan covers.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        room_type_id (str): Room type being priced.
        check_in (date): First night.
        check_out (date): Departure date (not a night).

    Returns:
        list[RatePlanRule]: Candidate plans for the resolver.
    """
    result = conn.execute(
        select(RatePlan)
        .where(RatePlan.room_type_id == room_type_id)
        .where(RatePlan.is_active == True)  # noqa: E712
        .where(
            or_(
                RatePlan.is_default == True,  # noqa: E712
                (RatePlan.valid_from < check_out) & (RatePlan.valid_to >= check_in),
            )
        )
        .order_by(RatePlan.id)
    )
    return [RatePlanRule.model_validate(row) for row in result]


def get_rate_plan(conn: Connection, rate_plan_id: str) -> Optional[RatePlanRule]:
    row = conn.execute(select(RatePlan).where(RatePlan.id == rate_plan_id)).fetchone()
    return RatePlanRule.model_validate(row) if row else None
