"""
Pydantic schemas for the booth catalog.
"""

from typing import Literal

from pydantic import BaseModel, Field

Venue = Literal["manor", "hippie"]


class BoothCreate(BaseModel):
    venue: Venue
    name: str = Field(..., min_length=1, max_length=100)
    capacity: int = Field(..., gt=0, le=100)
    hourly_rate_cents: int = Field(..., ge=0)


class BoothResponse(BaseModel):
    id: int
    venue: str
    name: str
    capacity: int
    hourly_rate_cents: int

    model_config = {"from_attributes": True}
