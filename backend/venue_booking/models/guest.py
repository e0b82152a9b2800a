"""
Guest roster row.

Rows are created as empty-named placeholders when a booking is finalized and
filled in later through the guest-list link. At most one organiser per
booking, enforced by a partial unique index.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, text

from venue_booking.db.base import Base, TimestampMixin


class Guest(Base, TimestampMixin):
    __tablename__ = "booking_guests"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False, default="")
    is_organiser = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index(
            "uq_booking_guests_one_organiser",
            "booking_id",
            unique=True,
            postgresql_where=text("is_organiser"),
            sqlite_where=text("is_organiser = 1"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Guest(id={self.id}, booking={self.booking_id}, name={self.name!r}, organiser={self.is_organiser})>"
