"""Create hotel, rate plan, booking and payment tables

Revision ID: 3f1c2a9d7b41
Revises:
Create Date: 2026-10-17 09:12:31.482117

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op  # type: ignore[attr-defined]

# revision identifiers, used by Alembic.
revision = "3f1c2a9d7b41"
down_revision = None
branch_labels = None
depends_on = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "hotels",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("timezone", sa.String(), nullable=False, server_default="UTC"),
        sa.Column("check_in_time", sa.String(5), nullable=False, server_default="15:00"),
        sa.Column("cancellation_policy_hours", sa.Integer(), nullable=False, server_default="24"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )

    op.create_table(
        "room_types",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "hotel_id",
            sa.String(36),
            sa.ForeignKey("hotels.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("max_occupancy", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_room_types_hotel_id", "room_types", ["hotel_id"])

    op.create_table(
        "rooms",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "hotel_id",
            sa.String(36),
            sa.ForeignKey("hotels.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "room_type_id",
            sa.String(36),
            sa.ForeignKey("room_types.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("room_number", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_rooms_hotel_id", "rooms", ["hotel_id"])
    op.create_index("ix_rooms_room_type_id", "rooms", ["room_type_id"])

    op.create_table(
        "rate_plans",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "hotel_id",
            sa.String(36),
            sa.ForeignKey("hotels.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "room_type_id",
            sa.String(36),
            sa.ForeignKey("room_types.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("valid_from", sa.Date(), nullable=False),
        sa.Column("valid_to", sa.Date(), nullable=False),
        sa.Column("days_of_week", JSONType, nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_stay_nights", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("max_stay_nights", sa.Integer(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("valid_from <= valid_to", name="rate_plans_validity_ordered"),
        sa.CheckConstraint("price_cents > 0", name="rate_plans_price_positive"),
        sa.CheckConstraint("min_stay_nights >= 1", name="rate_plans_min_stay_positive"),
    )
    op.create_index("ix_rate_plans_hotel_id", "rate_plans", ["hotel_id"])
    op.create_index("ix_rate_plans_room_type_id", "rate_plans", ["room_type_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("confirmation_code", sa.String(12), nullable=False),
        sa.Column(
            "hotel_id",
            sa.String(36),
            sa.ForeignKey("hotels.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "room_id",
            sa.String(36),
            sa.ForeignKey("rooms.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "room_type_id",
            sa.String(36),
            sa.ForeignKey("room_types.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("check_in_date", sa.Date(), nullable=False),
        sa.Column("check_out_date", sa.Date(), nullable=False),
        sa.Column("guest_name", sa.String(), nullable=False),
        sa.Column("guest_email", sa.String(), nullable=False),
        sa.Column("guest_phone", sa.String(), nullable=True),
        sa.Column("num_guests", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("soft_hold_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("price_snapshot", JSONType, nullable=False),
        sa.Column("total_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("payment_reference", sa.String(), nullable=True),
        sa.Column("cancellation_reason", sa.String(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_out_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("check_out_date > check_in_date", name="bookings_dates_valid"),
        sa.CheckConstraint("num_guests > 0", name="bookings_guests_positive"),
        sa.CheckConstraint(
            "(status = 'pending' AND soft_hold_expires_at IS NOT NULL) OR "
            "(status != 'pending' AND soft_hold_expires_at IS NULL)",
            name="bookings_soft_hold_only_when_pending",
        ),
    )
    op.create_index(
        "ix_bookings_confirmation_code", "bookings", ["confirmation_code"], unique=True
    )
    op.create_index("ix_bookings_hotel_id", "bookings", ["hotel_id"])
    op.create_index("ix_bookings_payment_reference", "bookings", ["payment_reference"])
    # Sweeper scan: only pending rows carry a hold deadline
    op.create_index(
        "idx_bookings_soft_hold_expires",
        "bookings",
        ["soft_hold_expires_at"],
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "booking_state_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "booking_id",
            sa.String(36),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("from_status", sa.String(20), nullable=False),
        sa.Column("to_status", sa.String(20), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_booking_state_log_booking_id", "booking_state_log", ["booking_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "booking_id",
            sa.String(36),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("payment_reference", sa.String(), nullable=True),
        sa.Column("event_id", sa.String(), nullable=True),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("failure_reason", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_payments_booking_id", "payments", ["booking_id"])
    op.create_index("ix_payments_event_id", "payments", ["event_id"], unique=True)

    op.create_table(
        "webhook_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("booking_id", sa.String(36), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("error", sa.String(), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_webhook_events_event_id", "webhook_events", ["event_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("webhook_events")
    op.drop_table("payments")
    op.drop_table("booking_state_log")
    op.drop_index("idx_bookings_soft_hold_expires", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("rate_plans")
    op.drop_table("rooms")
    op.drop_table("room_types")
    op.drop_table("hotels")
