"""
Availability endpoints. Read-only and advisory: the hold endpoint is the only
authority on whether a slot can actually be taken.
"""

from datetime import date, time
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.config import get_settings
from venue_booking.db.session import get_db
from venue_booking.schemas.availability import AvailabilityResponse, BoothAvailability
from venue_booking.schemas.booth import Venue
from venue_booking.services.availability_service import find_booths_for_session, get_availability

router = APIRouter(prefix="/availability", tags=["Availability"])
settings = get_settings()


@router.get("/", response_model=AvailabilityResponse)
async def get_availability_endpoint(
    venue: Venue = Query(...),
    booking_date: date = Query(..., alias="date"),
    party_size: int = Query(1, ge=1),
    session_hours: int = Query(1, ge=1, le=settings.MAX_SESSION_HOURS),
    owner_id: Optional[str] = Query(None, max_length=64),
    db: AsyncSession = Depends(get_db),
):
    """
    Per-booth slot status for one day. Pass owner_id to see your own live
    hold as available.
    """
    booths = await get_availability(db, venue, booking_date, party_size, session_hours, owner_id)
    return AvailabilityResponse(
        venue=venue,
        booking_date=booking_date,
        party_size=party_size,
        session_hours=session_hours,
        booths=booths,
    )


@router.get("/booths", response_model=list[BoothAvailability])
async def booths_for_session_endpoint(
    venue: Venue = Query(...),
    booking_date: date = Query(..., alias="date"),
    start_time: time = Query(...),
    end_time: time = Query(...),
    party_size: int = Query(1, ge=1),
    owner_id: Optional[str] = Query(None, max_length=64),
    db: AsyncSession = Depends(get_db),
):
    """Booths that can take the whole [start_time, end_time) session."""
    return await find_booths_for_session(db, venue, booking_date, start_time, end_time, party_size, owner_id)
