"""
Booking model covering booth sessions, ticket purchases and occasions.

Key design decisions:
- parent_booking_id links a purchase made through a share link to its root
  (group organiser or occasion). Roots have no parent.
- capacity/reserved_quantity only apply to roots. reserved_quantity is a
  denormalized running total of non-cancelled child tickets so the capacity
  check and the child insert can be guarded by one conditional UPDATE.
  The CHECK constraint is the final safety net against overselling.
- Rows are never deleted once confirmed; cancellation flips status.
- Per-type rules (organiser row, shareability) live in BOOKING_TYPE_RULES,
  not in ad hoc checks scattered across services.
"""

from dataclasses import dataclass

from sqlalchemy import (
    CheckConstraint, Column, Date, ForeignKey, Index, Integer, String, Time,
)

from venue_booking.db.base import Base, TimestampMixin

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"

KARAOKE = "karaoke"
PRIORITY_TICKET = "priority_ticket"
GROUP_TICKET = "group_ticket"
OCCASION = "occasion"
OCCASION_TICKET = "occasion_ticket"


@dataclass(frozen=True)
class BookingTypeRules:
    includes_organiser_slot: bool  # organiser guest row takes one of ticket_quantity slots
    shareable: bool  # root that hands out a share link
    linked_type: str | None = None  # type of bookings made through the share link


BOOKING_TYPE_RULES = {
    KARAOKE: BookingTypeRules(includes_organiser_slot=True, shareable=False),
    PRIORITY_TICKET: BookingTypeRules(includes_organiser_slot=True, shareable=True, linked_type=GROUP_TICKET),
    GROUP_TICKET: BookingTypeRules(includes_organiser_slot=False, shareable=False),
    OCCASION: BookingTypeRules(includes_organiser_slot=True, shareable=True, linked_type=OCCASION_TICKET),
    OCCASION_TICKET: BookingTypeRules(includes_organiser_slot=False, shareable=False),
}


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    parent_booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)
    booking_type = Column(String(30), nullable=False)
    venue = Column(String(20), nullable=False)
    booth_id = Column(Integer, ForeignKey("booths.id"), nullable=True, index=True)
    hold_id = Column(String(36), nullable=True)
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    ticket_quantity = Column(Integer, nullable=False, default=1)

    # Roots only
    capacity = Column(Integer, nullable=True)
    reserved_quantity = Column(Integer, nullable=False, default=0)
    ticket_price_cents = Column(Integer, nullable=True)
    occasion_name = Column(String(200), nullable=True)

    total_amount_cents = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=STATUS_PENDING)
    reference_code = Column(String(20), nullable=False, unique=True)
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    payment_id = Column(String(100), nullable=True)
    share_token = Column(String(200), nullable=True, unique=True)
    guest_list_token = Column(String(200), nullable=True)

    __table_args__ = (
        CheckConstraint("ticket_quantity > 0", name="check_booking_ticket_quantity_positive"),
        CheckConstraint("reserved_quantity >= 0", name="check_booking_reserved_non_negative"),
        CheckConstraint(
            "capacity IS NULL OR reserved_quantity <= capacity",
            name="check_booking_reserved_lte_capacity",
        ),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')",
            name="check_booking_status",
        ),
        Index("ix_bookings_booth_date", "booth_id", "booking_date"),
    )

    @property
    def rules(self) -> BookingTypeRules:
        return BOOKING_TYPE_RULES[self.booking_type]

    @property
    def is_root(self) -> bool:
        return self.parent_booking_id is None

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, type={self.booking_type}, parent={self.parent_booking_id}, "
            f"qty={self.ticket_quantity}, status={self.status})>"
        )
