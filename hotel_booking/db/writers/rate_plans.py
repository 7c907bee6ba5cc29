from datetime import date, datetime

from sqlalchemy import update
from sqlalchemy.engine import Connection

from hotel_booking.models.rate_plans import RatePlan


def update_rate_plan_price(
    conn: Connection,
    rate_plan_id: str,
    price_cents: int,
    valid_from: date,
    valid_to: date,
    now: datetime,
) -> int:
    """
    Set the nightly price and validity window of one rate plan.

    Existing bookings are unaffected: they carry their own price snapshot.

    Args:
        conn (Connection): SQLAlchemy DB connection (within a transaction).
        rate_plan_id (str): Rate plan to update.
        price_cents (int): New nightly price in minor units.
        valid_from (date): New first valid night.
        valid_to (date): New last valid night.
        now (datetime): Timestamp for updated_at.

    Returns:
        int: Number of rows updated.
    """
    stmt = (
        update(RatePlan)
        .where(RatePlan.id == rate_plan_id)
        .values(
            price_cents=price_cents,
            valid_from=valid_from,
            valid_to=valid_to,
            updated_at=now,
        )
    )
    return conn.execute(stmt).rowcount
