"""
Tests for the hold manager: uniqueness under races, expiry, release.
"""

import asyncio
from datetime import time, timedelta

import pytest
from sqlalchemy import select, update

from venue_booking.core.errors import BookingValidationError, HoldExpired, HoldNotFound, SlotConflict
from venue_booking.db.base import as_utc, utcnow
from venue_booking.models.hold import Hold, SlotClaim
from venue_booking.services.hold_service import create_hold, release_hold, validate_hold

from conftest import future_date


async def _hold(session_factory, booth_id, start, end, owner_id=None, days=7):
    async with session_factory() as db:
        return await create_hold(db, booth_id, future_date(days), start, end, owner_id=owner_id)


async def _set_expiry(session_factory, hold_id, expires_at):
    async with session_factory() as db:
        await db.execute(update(Hold).where(Hold.id == hold_id).values(expires_at=expires_at))
        await db.commit()


@pytest.mark.asyncio
async def test_create_hold_uses_fixed_ttl(session_factory, booth):
    hold = await _hold(session_factory, booth.id, time(19), time(20), owner_id="client-a")

    assert hold.status == "active"
    remaining = (as_utc(hold.expires_at) - utcnow()).total_seconds()
    assert 590 < remaining <= 600

    async with session_factory() as db:
        claims = (await db.execute(select(SlotClaim).where(SlotClaim.hold_id == hold.id))).scalars().all()
    assert [c.slot_start for c in claims] == [time(19)]


@pytest.mark.asyncio
async def test_concurrent_holds_on_same_slot_have_one_winner(session_factory, booth):
    """Five clients race for 19:00. Exactly one hold exists afterwards."""

    async def attempt(owner):
        try:
            await _hold(session_factory, booth.id, time(19), time(20), owner_id=owner)
            return "created"
        except SlotConflict:
            return "conflict"

    results = await asyncio.gather(*(attempt(f"client-{i}") for i in range(5)))

    assert results.count("created") == 1
    assert results.count("conflict") == 4

    async with session_factory() as db:
        active = (await db.execute(select(Hold).where(Hold.status == "active"))).scalars().all()
    assert len(active) == 1


@pytest.mark.asyncio
async def test_overlapping_session_conflicts(session_factory, booth):
    """A 19-21 hold blocks a 20-21 hold even though the keys differ."""
    await _hold(session_factory, booth.id, time(19), time(21), owner_id="client-a")

    with pytest.raises(SlotConflict):
        await _hold(session_factory, booth.id, time(20), time(21), owner_id="client-b")


@pytest.mark.asyncio
async def test_same_slot_on_other_booth_or_day_is_free(session_factory, booth, small_booth):
    await _hold(session_factory, booth.id, time(19), time(20), owner_id="client-a")

    other_booth = await _hold(session_factory, small_booth.id, time(19), time(20), owner_id="client-b")
    other_day = await _hold(session_factory, booth.id, time(19), time(20), owner_id="client-c", days=8)

    assert other_booth.status == "active"
    assert other_day.status == "active"


@pytest.mark.asyncio
async def test_release_is_idempotent(session_factory, booth):
    hold = await _hold(session_factory, booth.id, time(19), time(20), owner_id="client-a")

    async with session_factory() as db:
        assert await release_hold(db, hold.id) is True
        assert await release_hold(db, hold.id) is False
        assert await release_hold(db, "no-such-hold") is False

    # The key is free again
    again = await _hold(session_factory, booth.id, time(19), time(20), owner_id="client-b")
    assert again.id != hold.id


@pytest.mark.asyncio
async def test_hold_valid_just_before_expiry(session_factory, booth):
    hold = await _hold(session_factory, booth.id, time(19), time(20))
    await _set_expiry(session_factory, hold.id, utcnow() + timedelta(seconds=5))

    async with session_factory() as db:
        validated = await validate_hold(db, hold.id)
    assert validated.id == hold.id


@pytest.mark.asyncio
async def test_hold_expired_just_after_expiry(session_factory, booth):
    """Nothing swept the hold; expiry is still enforced on read."""
    hold = await _hold(session_factory, booth.id, time(19), time(20))
    await _set_expiry(session_factory, hold.id, utcnow() - timedelta(seconds=1))

    async with session_factory() as db:
        with pytest.raises(HoldExpired):
            await validate_hold(db, hold.id)

    # An expired hold no longer blocks the key
    replacement = await _hold(session_factory, booth.id, time(19), time(20), owner_id="client-b")
    assert replacement.status == "active"

    async with session_factory() as db:
        old = await db.get(Hold, hold.id)
    assert old.status == "expired"


@pytest.mark.asyncio
async def test_new_hold_releases_owners_previous_hold(session_factory, booth):
    first = await _hold(session_factory, booth.id, time(19), time(20), owner_id="client-a")
    second = await _hold(session_factory, booth.id, time(20), time(21), owner_id="client-a")

    async with session_factory() as db:
        with pytest.raises(HoldNotFound):
            await validate_hold(db, first.id)
        assert (await validate_hold(db, second.id)).id == second.id


@pytest.mark.asyncio
async def test_unknown_hold_not_found(session_factory):
    async with session_factory() as db:
        with pytest.raises(HoldNotFound):
            await validate_hold(db, "missing")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "start,end",
    [
        (time(19, 30), time(20, 30)),  # not on the hour
        (time(12), time(13)),  # before opening
        (time(18), time(21)),  # longer than the maximum session
    ],
)
async def test_invalid_session_rejected(session_factory, booth, start, end):
    with pytest.raises(BookingValidationError):
        await _hold(session_factory, booth.id, start, end)
