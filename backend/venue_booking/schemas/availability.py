"""
Pydantic schemas for availability queries.
"""

from datetime import date, time
from typing import Literal

from pydantic import BaseModel

from venue_booking.schemas.booth import BoothResponse

SlotStatus = Literal["available", "held", "booked"]


class SlotAvailability(BaseModel):
    start_time: time
    end_time: time
    status: SlotStatus


class SessionOffer(BaseModel):
    start_time: time
    end_time: time
    offerable: bool


class BoothAvailability(BaseModel):
    booth: BoothResponse
    slots: list[SlotAvailability]
    sessions: list[SessionOffer]


class AvailabilityResponse(BaseModel):
    venue: str
    booking_date: date
    party_size: int
    session_hours: int
    booths: list[BoothAvailability]
