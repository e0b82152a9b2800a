"""Initial schema: booths, holds, slot claims, bookings and guests.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Booths table
    op.create_table(
        "booths",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("venue", sa.String(20), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("hourly_rate_cents", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.UniqueConstraint("venue", "name", name="uq_booth_venue_name"),
        sa.CheckConstraint("capacity > 0", name="check_booth_capacity_positive"),
        sa.CheckConstraint("hourly_rate_cents >= 0", name="check_booth_rate_non_negative"),
    )
    op.create_index("ix_booths_id", "booths", ["id"])
    op.create_index("ix_booths_venue", "booths", ["venue"])

    # Holds table
    op.create_table(
        "holds",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("booth_id", sa.Integer(), sa.ForeignKey("booths.id"), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("slot_start", sa.Time(), nullable=False),
        sa.Column("slot_end", sa.Time(), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("slot_end > slot_start", name="check_hold_slot_order"),
        sa.CheckConstraint(
            "status IN ('active', 'released', 'expired', 'consumed')",
            name="check_hold_status",
        ),
    )
    # PARTIAL UNIQUE INDEX: at most one live hold per key. Terminal states
    # drop out of the index so the key can be held again.
    op.create_index(
        "uq_holds_active_key",
        "holds",
        ["booth_id", "booking_date", "slot_start", "slot_end"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )
    op.create_index("ix_holds_booth_date", "holds", ["booth_id", "booking_date"])
    op.create_index("ix_holds_owner_id", "holds", ["owner_id"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("parent_booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("booking_type", sa.String(30), nullable=False),
        sa.Column("venue", sa.String(20), nullable=False),
        sa.Column("booth_id", sa.Integer(), sa.ForeignKey("booths.id"), nullable=True),
        sa.Column("hold_id", sa.String(36), nullable=True),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("ticket_quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("reserved_quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("ticket_price_cents", sa.Integer(), nullable=True),
        sa.Column("occasion_name", sa.String(200), nullable=True),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("reference_code", sa.String(20), nullable=False),
        sa.Column("customer_name", sa.String(200), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("payment_id", sa.String(100), nullable=True),
        sa.Column("share_token", sa.String(200), nullable=True),
        sa.Column("guest_list_token", sa.String(200), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("reference_code", name="uq_bookings_reference_code"),
        sa.UniqueConstraint("share_token", name="uq_bookings_share_token"),
        sa.CheckConstraint("ticket_quantity > 0", name="check_booking_ticket_quantity_positive"),
        sa.CheckConstraint("reserved_quantity >= 0", name="check_booking_reserved_non_negative"),
        # Final safety net against overselling a root
        sa.CheckConstraint(
            "capacity IS NULL OR reserved_quantity <= capacity",
            name="check_booking_reserved_lte_capacity",
        ),
        sa.CheckConstraint("status IN ('pending', 'confirmed', 'cancelled')", name="check_booking_status"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_parent_booking_id", "bookings", ["parent_booking_id"])
    op.create_index("ix_bookings_booth_id", "bookings", ["booth_id"])
    # Availability reads confirmed bookings per booth and day
    op.create_index("ix_bookings_booth_date", "bookings", ["booth_id", "booking_date"])

    # Slot claims: one row per claimed hour, owned by a live hold or a booking
    op.create_table(
        "slot_claims",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booth_id", sa.Integer(), sa.ForeignKey("booths.id"), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("slot_start", sa.Time(), nullable=False),
        sa.Column("hold_id", sa.String(36), sa.ForeignKey("holds.id"), nullable=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        sa.UniqueConstraint("booth_id", "booking_date", "slot_start", name="uq_slot_claim"),
        sa.CheckConstraint("hold_id IS NOT NULL OR booking_id IS NOT NULL", name="check_slot_claim_owner"),
    )
    op.create_index("ix_slot_claims_hold_id", "slot_claims", ["hold_id"])
    op.create_index("ix_slot_claims_booking_id", "slot_claims", ["booking_id"])

    # Guests table
    op.create_table(
        "booking_guests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False, server_default=sa.text("''")),
        sa.Column("is_organiser", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )
    op.create_index("ix_booking_guests_id", "booking_guests", ["id"])
    op.create_index("ix_booking_guests_booking_id", "booking_guests", ["booking_id"])
    op.create_index(
        "uq_booking_guests_one_organiser",
        "booking_guests",
        ["booking_id"],
        unique=True,
        postgresql_where=sa.text("is_organiser"),
    )


def downgrade() -> None:
    op.drop_table("booking_guests")
    op.drop_table("slot_claims")
    op.drop_table("bookings")
    op.drop_table("holds")
    op.drop_table("booths")
