"""Initial schema: users, events, bookings with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'user'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("role IN ('user', 'organizer', 'admin')", name="check_user_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("category", sa.String(20), nullable=False, server_default=sa.text("'other'")),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("venue", sa.String(255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(5), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_seats", sa.Integer(), nullable=False),
        sa.Column("available_seats", sa.Integer(), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("available_seats >= 0", name="check_available_seats_non_negative"),
        sa.CheckConstraint("total_seats > 0", name="check_total_seats_positive"),
        sa.CheckConstraint("available_seats <= total_seats", name="check_available_lte_total"),
        sa.CheckConstraint("price >= 0", name="check_price_non_negative"),
        sa.CheckConstraint(
            "category IN ('conference', 'workshop', 'seminar', 'concert', 'sports', "
            "'exhibition', 'networking', 'other')",
            name="check_event_category",
        ),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_created_by", "events", ["created_by"])
    op.create_index("ix_events_created_at", "events", ["created_at"])
    # Listings filter and sort by date; the composite covers category/location filters
    op.create_index("ix_events_date", "events", ["date"])
    op.create_index("ix_events_category_location_date", "events", ["category", "location", "date"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("seats_booked", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("payment_id", sa.String(64), nullable=True),
        sa.Column("booking_reference", sa.String(36), nullable=False),
        sa.Column("booking_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("booking_details", sa.JSON(), nullable=False),
        sa.Column("payment_method", sa.String(32), nullable=False, server_default=sa.text("'mock'")),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("amount_paid", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("booking_reference", name="uq_bookings_booking_reference"),
        sa.CheckConstraint("seats_booked >= 1 AND seats_booked <= 10", name="check_seats_booked_range"),
        sa.CheckConstraint("total_amount >= 0", name="check_total_amount_non_negative"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'paid', 'refunded')",
            name="check_booking_status",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed', 'refunded')",
            name="check_payment_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_event_id", "bookings", ["event_id"])
    op.create_index("ix_bookings_created_at", "bookings", ["created_at"])
    # Reporting scans confirmed bookings by creation time
    op.create_index("ix_bookings_status_created_at", "bookings", ["status", "created_at"])
    # One confirmed booking per user and event; cancelled rows do not count,
    # so a user can book again after cancelling
    op.create_index(
        "uq_confirmed_booking_user_event",
        "bookings",
        ["user_id", "event_id"],
        unique=True,
        postgresql_where=sa.text("status = 'confirmed'"),
        sqlite_where=sa.text("status = 'confirmed'"),
    )


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("events")
    op.drop_table("users")
