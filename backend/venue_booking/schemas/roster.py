"""
Pydantic schemas for the merged guest roster.
"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, Field


class GuestEntry(BaseModel):
    id: int
    name: str
    is_organiser: bool

    model_config = {"from_attributes": True}


class LinkedGroup(BaseModel):
    booking_id: int
    customer_name: str
    ticket_quantity: int
    guests: list[GuestEntry]


class BookingSummary(BaseModel):
    booking_id: int
    booking_type: str
    reference_code: str
    venue: str
    booking_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    booth_name: Optional[str] = None
    ticket_quantity: int
    share_url: Optional[str] = None


class RosterResponse(BaseModel):
    booking: BookingSummary
    own_guests: list[GuestEntry]
    linked_groups: list[LinkedGroup]
    max_guests: int
    total_group_size: int


class GuestListUpdate(BaseModel):
    names: list[str] = Field(..., max_length=100)
