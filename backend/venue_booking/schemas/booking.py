"""
Pydantic schemas for finalization, ticket purchases and cancellation.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from venue_booking.schemas.booth import Venue


class CustomerDetails(BaseModel):
    name: str = Field(..., max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)

    @field_validator("name", "phone")
    @classmethod
    def strip(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        return value or None

    @model_validator(mode="after")
    def check_contact(self):
        if not self.name:
            raise ValueError("Please provide your name")
        if not self.email and not self.phone:
            raise ValueError("Provide an email or phone")
        return self


class KaraokeFinalize(BaseModel):
    hold_id: str
    payment_token: str = Field(..., min_length=1)
    customer: CustomerDetails
    party_size: int = Field(..., gt=0)


class TicketPurchase(BaseModel):
    venue: Venue
    booking_date: date
    ticket_quantity: int = Field(..., gt=0)
    payment_token: str = Field(..., min_length=1)
    customer: CustomerDetails
    date_of_birth: date
    group_token: Optional[str] = None


class OccasionTicketPurchase(BaseModel):
    ticket_quantity: int = Field(..., gt=0)
    payment_token: str = Field(..., min_length=1)
    customer: CustomerDetails
    date_of_birth: date


class BookingResult(BaseModel):
    booking_id: int
    reference_code: str
    guest_list_token: str
    guest_list_url: str
    payment_id: Optional[str] = None
    total_amount_cents: int
    share_token: Optional[str] = None
    share_url: Optional[str] = None


class TicketGroupResponse(BaseModel):
    organiser_name: str
    venue: str
    booking_date: date
    parent_booking_id: int
    remaining_capacity: Optional[int] = None


class RemainingCapacityResponse(BaseModel):
    booking_id: int
    capacity: Optional[int]
    remaining_capacity: Optional[int]


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str
