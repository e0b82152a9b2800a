"""
Booth catalog endpoints.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.security import verify_admin_token
from venue_booking.db.session import get_db
from venue_booking.schemas.booth import BoothCreate, BoothResponse, Venue
from venue_booking.services.catalog_service import create_booth, list_booths

router = APIRouter(prefix="/booths", tags=["Booths"])


@router.get("/", response_model=list[BoothResponse])
async def list_booths_endpoint(
    venue: Venue = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Active booths at a venue. Served from Redis when warm."""
    return await list_booths(db, venue)


@router.post("/", response_model=BoothResponse, status_code=status.HTTP_201_CREATED)
async def create_booth_endpoint(
    booth_data: BoothCreate,
    _: str = Depends(verify_admin_token),
    db: AsyncSession = Depends(get_db),
):
    """Add a booth. Staff only."""
    return await create_booth(db, booth_data)
