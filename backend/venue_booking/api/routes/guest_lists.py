"""
Guest-list endpoints, addressed by the signed guest-list token.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.db.session import get_db
from venue_booking.schemas.roster import GuestListUpdate, RosterResponse
from venue_booking.services.roster_service import get_roster_by_token, save_own_guests_by_token

router = APIRouter(prefix="/guest-lists", tags=["Guest lists"])


@router.get("/{token}", response_model=RosterResponse)
async def get_roster_endpoint(token: str, db: AsyncSession = Depends(get_db)):
    """Own guests plus read-only groups of everyone who joined via the share link."""
    return await get_roster_by_token(db, token)


@router.put("/{token}", response_model=RosterResponse)
async def save_roster_endpoint(token: str, update: GuestListUpdate, db: AsyncSession = Depends(get_db)):
    """
    Replace this booking's own guest names. The first name is the organiser's
    when the booking has one; blank entries are dropped.
    """
    return await save_own_guests_by_token(db, token, update.names)
