"""
Pydantic schemas for hold requests and responses.
"""

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class HoldCreate(BaseModel):
    booth_id: int
    booking_date: date
    start_time: time
    end_time: time
    owner_id: Optional[str] = Field(None, max_length=64)

    @model_validator(mode="after")
    def check_order(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class HoldResponse(BaseModel):
    hold_id: str = Field(validation_alias="id")
    booth_id: int
    booking_date: date
    start_time: time = Field(validation_alias="slot_start")
    end_time: time = Field(validation_alias="slot_end")
    status: str
    expires_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}
