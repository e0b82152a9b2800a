from venue_booking.schemas.booth import BoothCreate, BoothResponse
from venue_booking.schemas.availability import AvailabilityResponse, BoothAvailability
from venue_booking.schemas.hold import HoldCreate, HoldResponse
from venue_booking.schemas.booking import (
    BookingResult, CustomerDetails, KaraokeFinalize, TicketPurchase,
)
from venue_booking.schemas.occasion import OccasionCreate, OccasionDetails
from venue_booking.schemas.roster import GuestListUpdate, RosterResponse

__all__ = [
    "BoothCreate", "BoothResponse",
    "AvailabilityResponse", "BoothAvailability",
    "HoldCreate", "HoldResponse",
    "BookingResult", "CustomerDetails", "KaraokeFinalize", "TicketPurchase",
    "OccasionCreate", "OccasionDetails",
    "GuestListUpdate", "RosterResponse",
]
