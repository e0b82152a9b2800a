"""
Pydantic schemas for occasions (capacity-bounded ticketed events).
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from venue_booking.schemas.booking import CustomerDetails
from venue_booking.schemas.booth import Venue


class OccasionCreate(BaseModel):
    occasion_name: str = Field(..., min_length=1, max_length=200)
    venue: Venue
    booking_date: date
    capacity: int = Field(..., gt=0, le=1000)
    ticket_price_cents: Optional[int] = Field(None, ge=0)
    organiser: CustomerDetails


class OccasionDetails(BaseModel):
    id: int
    occasion_name: str
    booking_date: date
    venue: str
    capacity: int
    ticket_price_cents: int
    share_token: str
    organiser_name: Optional[str]
    total_guests: int
    total_bookings: int
    remaining_capacity: int


class OccasionCreated(BaseModel):
    booking_id: int
    reference_code: str
    share_token: str
    share_url: str
    guest_list_token: str
    guest_list_url: str
