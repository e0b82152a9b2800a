"""
Hold manager: time-limited exclusive leases on booth slots.

CONCURRENCY STRATEGY: Unique constraints, not read-then-decide
===============================================================

Problem:
  Two clients look at availability, both see 19:00 free, both ask for it.
  Any "check the slot list, then insert" logic lets both through.

Solution:
  create_hold never checks first. In one transaction it
    1. marks expired holds on that booth/date as expired and frees their claims
    2. inserts the hold (partial unique index over active holds)
    3. inserts one SlotClaim per hour (unique on booth, date, slot start)
  and commits. Whoever commits second trips a unique violation and gets a
  SlotConflict with nothing left behind. Confirmed bookings keep their claims,
  so a booked hour conflicts the same way.

  The database is the arbiter. Availability and any UI button disabling are
  advisory only.

Expiry is lazy: validate_hold and the consume step in finalization compare
expires_at against the clock, so a hold nobody swept is still dead on time.
The background sweeper only keeps the table tidy.

Lifecycle: active -> released | expired | consumed. All three terminal
states free the key.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.config import get_settings
from venue_booking.core.errors import BookingValidationError, HoldExpired, HoldNotFound, SlotConflict
from venue_booking.core.logging import get_logger
from venue_booking.core.metrics import holds_expired, record_hold_attempt, record_hold_release
from venue_booking.db.base import as_utc, utcnow
from venue_booking.models.hold import (
    Hold, SlotClaim, HOLD_ACTIVE, HOLD_CONSUMED, HOLD_EXPIRED, HOLD_RELEASED,
)
from venue_booking.services.catalog_service import get_booth
from venue_booking.services.slots import split_session

logger = get_logger(__name__)
settings = get_settings()


async def expire_stale_holds(
    db: AsyncSession,
    now: Optional[datetime] = None,
    booth_id: Optional[int] = None,
    booking_date: Optional[date] = None,
) -> int:
    """Mark active holds past expires_at as expired and free their claims. Does not commit."""
    now = now or utcnow()
    stmt = (
        update(Hold)
        .where(Hold.status == HOLD_ACTIVE, Hold.expires_at <= now)
        .values(status=HOLD_EXPIRED)
        .returning(Hold.id)
        .execution_options(synchronize_session=False)
    )
    if booth_id is not None:
        stmt = stmt.where(Hold.booth_id == booth_id)
    if booking_date is not None:
        stmt = stmt.where(Hold.booking_date == booking_date)

    expired_ids = list((await db.execute(stmt)).scalars().all())
    if expired_ids:
        await db.execute(delete(SlotClaim).where(SlotClaim.hold_id.in_(expired_ids)))
        holds_expired.inc(len(expired_ids))
        logger.info("holds_expired", count=len(expired_ids), booth_id=booth_id)
    return len(expired_ids)


async def release_owner_holds(db: AsyncSession, owner_id: str) -> int:
    """
    Release every live hold of one client, best effort.

    A client holds at most one selection at a time. If this fails the old
    holds simply run out their TTL, so the failure is logged and swallowed.
    """
    try:
        result = await db.execute(
            update(Hold)
            .where(Hold.owner_id == owner_id, Hold.status == HOLD_ACTIVE)
            .values(status=HOLD_RELEASED)
            .returning(Hold.id)
            .execution_options(synchronize_session=False)
        )
        released_ids = list(result.scalars().all())
        if released_ids:
            await db.execute(delete(SlotClaim).where(SlotClaim.hold_id.in_(released_ids)))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("owner_hold_release_failed", owner_id=owner_id, error=str(e))
        return 0

    if released_ids:
        logger.info("owner_holds_released", owner_id=owner_id, count=len(released_ids))
    return len(released_ids)


async def create_hold(
    db: AsyncSession,
    booth_id: int,
    booking_date: date,
    start: time,
    end: time,
    owner_id: Optional[str] = None,
) -> Hold:
    """
    Lease [start, end) on a booth for HOLD_TTL_SECONDS.
    Raises SlotConflict if any hour is held or booked.
    """
    slots = split_session(start, end)
    if booking_date < date.today():
        raise BookingValidationError("That date has already passed.")

    booth = await get_booth(db, booth_id)

    if owner_id:
        await release_owner_holds(db, owner_id)

    now = utcnow()
    await expire_stale_holds(db, now, booth_id=booth.id, booking_date=booking_date)

    hold = Hold(
        booth_id=booth.id,
        booking_date=booking_date,
        slot_start=start,
        slot_end=end,
        owner_id=owner_id,
        status=HOLD_ACTIVE,
        expires_at=now + timedelta(seconds=settings.HOLD_TTL_SECONDS),
    )
    db.add(hold)
    try:
        await db.flush()
        db.add_all([
            SlotClaim(booth_id=booth.id, booking_date=booking_date, slot_start=slot_start, hold_id=hold.id)
            for slot_start, _ in slots
        ])
        await db.flush()
        await db.commit()
    except IntegrityError:
        await db.rollback()
        record_hold_attempt(created=False)
        logger.info(
            "hold_conflict",
            booth_id=booth_id,
            booking_date=str(booking_date),
            start=str(start),
            end=str(end),
        )
        raise SlotConflict()

    record_hold_attempt(created=True)
    logger.info(
        "hold_created",
        hold_id=hold.id,
        booth_id=booth_id,
        booking_date=str(booking_date),
        start=str(start),
        end=str(end),
        expires_at=str(hold.expires_at),
    )
    return hold


async def release_hold(db: AsyncSession, hold_id: str) -> bool:
    """
    Release a hold. Idempotent: unknown, expired, consumed or already released
    ids are a successful no-op. Returns whether a live hold was released.
    """
    result = await db.execute(
        update(Hold)
        .where(Hold.id == hold_id, Hold.status == HOLD_ACTIVE)
        .values(status=HOLD_RELEASED)
        .returning(Hold.id)
        .execution_options(synchronize_session=False)
    )
    released = result.scalar_one_or_none() is not None
    if released:
        await db.execute(delete(SlotClaim).where(SlotClaim.hold_id == hold_id))
    await db.commit()

    record_hold_release(released)
    logger.info("hold_released" if released else "hold_release_noop", hold_id=hold_id)
    return released


async def validate_hold(db: AsyncSession, hold_id: str) -> Hold:
    """
    Return the hold if it can still be redeemed.
    Expiry is checked against the clock here, whether or not anything swept it.
    """
    result = await db.execute(select(Hold).where(Hold.id == hold_id))
    hold = result.scalar_one_or_none()

    if hold is None or hold.status in (HOLD_RELEASED, HOLD_CONSUMED):
        raise HoldNotFound()

    if hold.status == HOLD_EXPIRED or as_utc(hold.expires_at) <= utcnow():
        raise HoldExpired()

    return hold


async def consume_hold(db: AsyncSession, hold_id: str, booking_id: int) -> bool:
    """
    Conditionally consume a live hold into a booking and hand its slot claims
    over. Part of the caller's transaction; does not commit.
    Returns False if the hold expired or was released in the meantime.
    """
    result = await db.execute(
        update(Hold)
        .where(
            Hold.id == hold_id,
            Hold.status == HOLD_ACTIVE,
            Hold.expires_at > utcnow(),
        )
        .values(status=HOLD_CONSUMED)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return False

    await db.execute(
        update(SlotClaim)
        .where(SlotClaim.hold_id == hold_id)
        .values(hold_id=None, booking_id=booking_id)
        .execution_options(synchronize_session=False)
    )
    return True
