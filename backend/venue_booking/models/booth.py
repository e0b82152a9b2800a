"""
Karaoke booth: the bookable resource.

Reference data. A booth's capacity is the largest party it can take and its
hourly rate prices every one-hour slot.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String, UniqueConstraint

from venue_booking.db.base import Base, TimestampMixin


class Booth(Base, TimestampMixin):
    __tablename__ = "booths"

    id = Column(Integer, primary_key=True, index=True)
    venue = Column(String(20), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False)
    hourly_rate_cents = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("venue", "name", name="uq_booth_venue_name"),
        CheckConstraint("capacity > 0", name="check_booth_capacity_positive"),
        CheckConstraint("hourly_rate_cents >= 0", name="check_booth_rate_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Booth(id={self.id}, venue={self.venue}, name={self.name}, capacity={self.capacity})>"
