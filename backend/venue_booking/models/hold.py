"""
Hold (lease) and slot claim models.

Key design decisions:
- A hold covers one or more consecutive one-hour slots of one booth.
- Partial unique index on (booth, date, start, end) over active holds: two
  live holds can never share a key, whatever the interleaving.
- SlotClaim has one row per claimed hour with a plain unique constraint. It
  also catches overlapping keys (19-21 vs 20-21). Claims belong to a live
  hold, or to the confirmed booking the hold was consumed into.
- Expired holds may stay `active` until someone looks at them; expiry is
  always evaluated against expires_at, never trusted from status alone.
"""

import uuid

from sqlalchemy import (
    CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, String, Time,
    UniqueConstraint, text,
)

from venue_booking.db.base import Base, TimestampMixin

HOLD_ACTIVE = "active"
HOLD_RELEASED = "released"
HOLD_EXPIRED = "expired"
HOLD_CONSUMED = "consumed"


def _new_hold_id() -> str:
    return str(uuid.uuid4())


class Hold(Base, TimestampMixin):
    __tablename__ = "holds"

    id = Column(String(36), primary_key=True, default=_new_hold_id)
    booth_id = Column(Integer, ForeignKey("booths.id"), nullable=False)
    booking_date = Column(Date, nullable=False)
    slot_start = Column(Time, nullable=False)
    slot_end = Column(Time, nullable=False)
    owner_id = Column(String(64), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=HOLD_ACTIVE)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index(
            "uq_holds_active_key",
            "booth_id", "booking_date", "slot_start", "slot_end",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("ix_holds_booth_date", "booth_id", "booking_date"),
        CheckConstraint("slot_end > slot_start", name="check_hold_slot_order"),
        CheckConstraint(
            "status IN ('active', 'released', 'expired', 'consumed')",
            name="check_hold_status",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Hold(id={self.id}, booth={self.booth_id}, date={self.booking_date}, "
            f"{self.slot_start}-{self.slot_end}, status={self.status})>"
        )


class SlotClaim(Base):
    __tablename__ = "slot_claims"

    id = Column(Integer, primary_key=True)
    booth_id = Column(Integer, ForeignKey("booths.id"), nullable=False)
    booking_date = Column(Date, nullable=False)
    slot_start = Column(Time, nullable=False)
    hold_id = Column(String(36), ForeignKey("holds.id"), nullable=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)

    __table_args__ = (
        UniqueConstraint("booth_id", "booking_date", "slot_start", name="uq_slot_claim"),
        CheckConstraint(
            "hold_id IS NOT NULL OR booking_id IS NOT NULL",
            name="check_slot_claim_owner",
        ),
    )

    def __repr__(self) -> str:
        return f"<SlotClaim(booth={self.booth_id}, date={self.booking_date}, start={self.slot_start})>"
