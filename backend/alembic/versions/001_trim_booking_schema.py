# backend/alembic/versions/001_trim_booking_schema.py
"""Booking engine schema - tenants, barbers, services, bookings, payments

Revision ID: 001_trim_booking_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

Every business-owned table carries business_id so repositories can scope
each query to a single tenant. The composite bookings index backs the
per-barber-per-day overlap scan; the expiry index backs the sweeper.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_trim_booking_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all booking engine tables."""
    is_sqlite = op.get_bind().dialect.name == "sqlite"

    print("Creating tenant and user tables...")

    op.create_table(
        "businesses",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("slug", sa.String(63), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="Europe/Dublin"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_businesses_slug", "businesses", ["slug"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="CUSTOMER"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("blacklisted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("blacklist_reason", sa.String(255), nullable=True),
        sa.Column("blacklisted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("no_show_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("business_id", "email", name="uq_users_business_email"),
        sa.CheckConstraint("role IN ('CUSTOMER', 'BARBER', 'ADMIN')", name="ck_users_role"),
        sa.CheckConstraint("no_show_count >= 0", name="ck_users_no_show_count"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_business_id", "users", ["business_id"])

    print("Creating barber and service tables...")

    op.create_table(
        "barbers",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_barbers_business_id", "barbers", ["business_id"])

    op.create_table(
        "barber_availability",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("barber_id", sa.String(26), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["barber_id"], ["barbers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("barber_id", "day_of_week", name="uq_barber_availability_day"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_barber_availability_day"),
        sa.CheckConstraint("start_time < end_time", name="ck_barber_availability_order"),
    )
    op.create_index("ix_barber_availability_barber_id", "barber_availability", ["barber_id"])

    op.create_table(
        "barber_breaks",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("barber_id", sa.String(26), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("label", sa.String(100), nullable=True),
        sa.ForeignKeyConstraint(["barber_id"], ["barbers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("start_time < end_time", name="ck_barber_breaks_order"),
    )
    op.create_index("ix_barber_breaks_barber_id", "barber_breaks", ["barber_id"])

    op.create_table(
        "services",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("deposit_percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("duration_minutes > 0", name="ck_services_duration_positive"),
        sa.CheckConstraint("price > 0", name="ck_services_price_positive"),
        sa.CheckConstraint("deposit_percentage BETWEEN 0 AND 100", name="ck_services_deposit_percentage"),
    )
    op.create_index("ix_services_business_id", "services", ["business_id"])

    print("Creating booking and payment tables...")

    booking_constraints = [
        sa.CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'COMPLETED', 'CANCELLED', 'NO_SHOW')",
            name="ck_bookings_status",
        ),
        sa.CheckConstraint(
            "payment_status IN ('PENDING', 'DEPOSIT_PENDING', 'DEPOSIT_PAID', "
            "'FULLY_PAID', 'REFUNDED', 'CANCELLED')",
            name="ck_bookings_payment_status",
        ),
        sa.CheckConstraint(
            "payment_method IN ('pay_online', 'pay_in_shop')",
            name="ck_bookings_payment_method",
        ),
        sa.CheckConstraint("deposit_amount >= 0", name="ck_bookings_deposit_non_negative"),
        sa.CheckConstraint("outstanding_balance >= 0", name="ck_bookings_outstanding_non_negative"),
    ]
    if not is_sqlite:
        booking_constraints.append(sa.CheckConstraint("start_time < end_time", name="ck_bookings_time_order"))

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("customer_id", sa.String(26), nullable=False),
        sa.Column("barber_id", sa.String(26), nullable=False),
        sa.Column("service_id", sa.String(26), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("payment_method", sa.String(20), nullable=False, server_default="pay_online"),
        sa.Column("deposit_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("outstanding_balance", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["barber_id"], ["barbers.id"]),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"]),
        sa.PrimaryKeyConstraint("id"),
        *booking_constraints,
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_business_id", "bookings", ["business_id"])
    op.create_index("ix_bookings_customer_id", "bookings", ["customer_id"])
    # Overlap scan under the barber-day lock
    op.create_index("ix_bookings_barber_date_status", "bookings", ["barber_id", "booking_date", "status"])
    # Expiry sweeper scan
    op.create_index("ix_bookings_expiry_scan", "bookings", ["status", "payment_status", "expires_at"])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_id", sa.String(26), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False, comment="Amount in cents"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="eur"),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"]),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("booking_id"),
        sa.UniqueConstraint("stripe_payment_intent_id"),
    )
    op.create_index("ix_payments_business_id", "payments", ["business_id"])

    print("Creating notification delivery ledger...")

    op.create_table(
        "notification_deliveries",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("channel", sa.String(20), nullable=False),
        sa.Column("recipient", sa.String(255), nullable=False),
        sa.Column("idempotency_key", sa.String(255), nullable=False),
        sa.Column(
            "payload",
            postgresql.JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), "sqlite"),
            nullable=False,
        ),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("idempotency_key", name="uq_notification_deliveries_idempotency"),
    )
    op.create_index("ix_notification_deliveries_event_type", "notification_deliveries", ["event_type"])

    print("Booking engine schema created")


def downgrade() -> None:
    """Drop all booking engine tables."""
    print("Dropping booking engine schema...")

    op.drop_index("ix_notification_deliveries_event_type", table_name="notification_deliveries")
    op.drop_table("notification_deliveries")

    op.drop_index("ix_payments_business_id", table_name="payments")
    op.drop_table("payments")

    op.drop_index("ix_bookings_expiry_scan", table_name="bookings")
    op.drop_index("ix_bookings_barber_date_status", table_name="bookings")
    op.drop_index("ix_bookings_customer_id", table_name="bookings")
    op.drop_index("ix_bookings_business_id", table_name="bookings")
    op.drop_index("ix_bookings_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_services_business_id", table_name="services")
    op.drop_table("services")
    op.drop_index("ix_barber_breaks_barber_id", table_name="barber_breaks")
    op.drop_table("barber_breaks")
    op.drop_index("ix_barber_availability_barber_id", table_name="barber_availability")
    op.drop_table("barber_availability")
    op.drop_index("ix_barbers_business_id", table_name="barbers")
    op.drop_table("barbers")

    op.drop_index("ix_users_business_id", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")

    op.drop_index("ix_businesses_slug", table_name="businesses")
    op.drop_table("businesses")

    print("Booking engine schema dropped")
