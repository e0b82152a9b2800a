"""
Booth catalog: read-mostly reference data behind a Redis cache.
"""

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.models.booth import Booth
from venue_booking.schemas.booth import BoothCreate, BoothResponse
from venue_booking.services.cache_service import (
    get_cached_booths, invalidate_booth_cache, set_cached_booths,
)
from venue_booking.core.logging import get_logger

logger = get_logger(__name__)


async def create_booth(db: AsyncSession, booth_data: BoothCreate) -> Booth:
    booth = Booth(
        venue=booth_data.venue,
        name=booth_data.name,
        capacity=booth_data.capacity,
        hourly_rate_cents=booth_data.hourly_rate_cents,
        is_active=True,
    )
    db.add(booth)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Booth {booth_data.name!r} already exists at {booth_data.venue}",
        )
    await db.commit()
    await invalidate_booth_cache(booth.venue)

    logger.info("booth_created", booth_id=booth.id, venue=booth.venue, capacity=booth.capacity)
    return booth


async def get_booth(db: AsyncSession, booth_id: int) -> Booth:
    result = await db.execute(select(Booth).where(Booth.id == booth_id))
    booth = result.scalar_one_or_none()

    if not booth or not booth.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booth {booth_id} not found",
        )
    return booth


async def list_booths(db: AsyncSession, venue: str) -> list[BoothResponse]:
    """Active booths for a venue, ordered by name. Cached per venue."""
    cached = await get_cached_booths(venue)
    if cached is not None:
        return [BoothResponse.model_validate(b) for b in cached]

    result = await db.execute(
        select(Booth)
        .where(Booth.venue == venue, Booth.is_active.is_(True))
        .order_by(Booth.name, Booth.id)
    )
    booths = [BoothResponse.model_validate(b) for b in result.scalars().all()]

    await set_cached_booths(venue, [b.model_dump() for b in booths])
    return booths
