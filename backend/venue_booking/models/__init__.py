from venue_booking.models.booth import Booth
from venue_booking.models.hold import Hold, SlotClaim
from venue_booking.models.booking import Booking
from venue_booking.models.guest import Guest

__all__ = ["Booth", "Hold", "SlotClaim", "Booking", "Guest"]
