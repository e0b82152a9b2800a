"""
Hold endpoints: lease a slot while the customer pays.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.db.session import get_db
from venue_booking.schemas.hold import HoldCreate, HoldResponse
from venue_booking.services.hold_service import create_hold, release_hold, validate_hold

router = APIRouter(prefix="/holds", tags=["Holds"])


@router.post("/", response_model=HoldResponse, status_code=status.HTTP_201_CREATED)
async def create_hold_endpoint(
    hold_data: HoldCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Hold a booth for [start_time, end_time).

    Returns 409 if any hour is already held or booked; the client should
    send the user back to slot selection. Any earlier live hold with the same
    owner_id is released first.
    """
    hold = await create_hold(
        db,
        hold_data.booth_id,
        hold_data.booking_date,
        hold_data.start_time,
        hold_data.end_time,
        owner_id=hold_data.owner_id,
    )
    return HoldResponse.model_validate(hold)


@router.get("/{hold_id}", response_model=HoldResponse)
async def validate_hold_endpoint(hold_id: str, db: AsyncSession = Depends(get_db)):
    """404 if unknown or already used, 410 if it ran out."""
    hold = await validate_hold(db, hold_id)
    return HoldResponse.model_validate(hold)


@router.delete("/{hold_id}", status_code=status.HTTP_204_NO_CONTENT)
async def release_hold_endpoint(hold_id: str, db: AsyncSession = Depends(get_db)):
    """Release a hold (modal closed, user went back). Always succeeds."""
    await release_hold(db, hold_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
