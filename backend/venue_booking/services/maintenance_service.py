"""
Background housekeeping.

Expires lapsed holds and drops abandoned ticket reservations on a fixed
interval. Nothing depends on it for correctness: expiry is also evaluated at
read time and by the conditional consume, so this only keeps tables tidy and
returns abandoned tickets to their roots.
"""

import asyncio

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from venue_booking.core.config import get_settings
from venue_booking.core.logging import get_logger
from venue_booking.services.booking_service import abandon_stale_reservations
from venue_booking.services.hold_service import expire_stale_holds

logger = get_logger(__name__)
settings = get_settings()


async def sweep_expired_holds(db: AsyncSession) -> dict:
    expired = await expire_stale_holds(db)
    await db.commit()
    abandoned = await abandon_stale_reservations(db)
    return {"holds_expired": expired, "reservations_abandoned": abandoned}


async def run_sweeper(session_factory: async_sessionmaker, interval_seconds: int):
    """Sweep forever; a failed pass is logged and retried on the next tick."""
    logger.info("hold_sweeper_started", interval_seconds=interval_seconds)
    while True:
        try:
            async with session_factory() as db:
                result = await sweep_expired_holds(db)
            if any(result.values()):
                logger.info("hold_sweep_completed", **result)
        except asyncio.CancelledError:
            logger.info("hold_sweeper_stopped")
            raise
        except SQLAlchemyError as e:
            logger.warning("hold_sweep_failed", error=str(e))

        await asyncio.sleep(interval_seconds)
