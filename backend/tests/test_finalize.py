"""
Tests for karaoke finalization: hold + payment -> confirmed booking.
"""

import asyncio
from datetime import time, timedelta

import pytest
from sqlalchemy import select, update

from venue_booking.core.errors import (
    BookingValidationError, HoldExpired, HoldNotFound, PaymentFailed, SlotConflict,
)
from venue_booking.db.base import utcnow
from venue_booking.models.booking import Booking
from venue_booking.models.guest import Guest
from venue_booking.models.hold import Hold, SlotClaim
from venue_booking.services.booking_service import finalize_karaoke
from venue_booking.services.hold_service import create_hold, validate_hold
from venue_booking.services.interfaces.sandbox_payment import DECLINED_NONCE, OK_NONCE, SandboxPayments

from conftest import customer, future_date


async def _hold(session_factory, booth, start=time(19), end=time(21)):
    async with session_factory() as db:
        return await create_hold(db, booth.id, future_date(), start, end, owner_id="client-a")


async def _finalize(session_factory, payments, hold_id, token=OK_NONCE, party_size=4):
    async with session_factory() as db:
        return await finalize_karaoke(db, payments, hold_id, token, customer(), party_size)


async def _bookings(session_factory):
    async with session_factory() as db:
        return (await db.execute(select(Booking))).scalars().all()


@pytest.mark.asyncio
async def test_finalize_creates_confirmed_booking(session_factory, payments, booth):
    hold = await _hold(session_factory, booth)

    result = await _finalize(session_factory, payments, hold.id)

    assert result.reference_code.startswith("HC-")
    assert result.total_amount_cents == 2 * 5000
    assert result.guest_list_url.endswith(f"/guest-list?token={result.guest_list_token}")
    assert payments.charges[f"hold-{hold.id}"] == (result.payment_id, 10000)

    async with session_factory() as db:
        booking = await db.get(Booking, result.booking_id)
        consumed = await db.get(Hold, hold.id)
        claims = (await db.execute(
            select(SlotClaim).where(SlotClaim.booth_id == booth.id).order_by(SlotClaim.slot_start)
        )).scalars().all()
        guests = (await db.execute(
            select(Guest).where(Guest.booking_id == result.booking_id).order_by(Guest.id)
        )).scalars().all()

    assert booking.status == "confirmed"
    assert booking.start_time == time(19) and booking.end_time == time(21)
    assert booking.ticket_quantity == 4
    assert consumed.status == "consumed"
    assert [(c.slot_start, c.booking_id, c.hold_id) for c in claims] == [
        (time(19), result.booking_id, None),
        (time(20), result.booking_id, None),
    ]
    assert [(g.name, g.is_organiser) for g in guests] == [
        ("Jane", True), ("", False), ("", False), ("", False),
    ]


@pytest.mark.asyncio
async def test_booked_slot_cannot_be_held_again(session_factory, payments, booth):
    hold = await _hold(session_factory, booth)
    await _finalize(session_factory, payments, hold.id)

    with pytest.raises(SlotConflict):
        await _hold(session_factory, booth, time(20), time(21))


@pytest.mark.asyncio
async def test_declined_payment_leaves_hold_untouched(session_factory, payments, booth):
    hold = await _hold(session_factory, booth)

    with pytest.raises(PaymentFailed):
        await _finalize(session_factory, payments, hold.id, token=DECLINED_NONCE)

    assert await _bookings(session_factory) == []
    async with session_factory() as db:
        assert (await validate_hold(db, hold.id)).status == "active"

    # The customer can retry with another card
    result = await _finalize(session_factory, payments, hold.id)
    assert result.booking_id


@pytest.mark.asyncio
async def test_expired_hold_is_not_charged(session_factory, payments, booth):
    hold = await _hold(session_factory, booth)
    async with session_factory() as db:
        await db.execute(
            update(Hold).where(Hold.id == hold.id).values(expires_at=utcnow() - timedelta(seconds=1))
        )
        await db.commit()

    with pytest.raises(HoldExpired):
        await _finalize(session_factory, payments, hold.id)

    assert payments.charges == {}
    assert await _bookings(session_factory) == []


class ExpiringPayments(SandboxPayments):
    """Charges succeed, but the hold runs out while the provider is busy."""

    def __init__(self, session_factory, hold_id):
        super().__init__()
        self.session_factory = session_factory
        self.hold_id = hold_id

    async def charge(self, token, amount_cents, idempotency_key):
        payment_id = await super().charge(token, amount_cents, idempotency_key)
        async with self.session_factory() as db:
            await db.execute(
                update(Hold).where(Hold.id == self.hold_id).values(expires_at=utcnow() - timedelta(seconds=1))
            )
            await db.commit()
        return payment_id


@pytest.mark.asyncio
async def test_hold_expiring_during_payment_is_refunded(session_factory, booth):
    hold = await _hold(session_factory, booth)
    payments = ExpiringPayments(session_factory, hold.id)

    with pytest.raises(HoldExpired):
        await _finalize(session_factory, payments, hold.id)

    payment_id, amount = payments.charges[f"hold-{hold.id}"]
    assert payments.refunds == {payment_id: amount}
    assert await _bookings(session_factory) == []

    async with session_factory() as db:
        claims = (await db.execute(select(SlotClaim))).scalars().all()
    assert all(c.booking_id is None for c in claims)


@pytest.mark.asyncio
async def test_party_larger_than_booth_rejected(session_factory, payments, small_booth):
    hold = await _hold(session_factory, small_booth, time(19), time(20))

    with pytest.raises(BookingValidationError):
        await _finalize(session_factory, payments, hold.id, party_size=3)

    assert payments.charges == {}


@pytest.mark.asyncio
async def test_second_finalize_of_consumed_hold_rejected(session_factory, payments, booth):
    hold = await _hold(session_factory, booth)
    first = await _finalize(session_factory, payments, hold.id)

    with pytest.raises(HoldNotFound):
        await _finalize(session_factory, payments, hold.id)

    assert payments.refunds == {}
    assert [b.id for b in await _bookings(session_factory)] == [first.booking_id]


@pytest.mark.asyncio
async def test_concurrent_finalize_of_same_hold(session_factory, payments, booth):
    """A double-submitted finalize never creates a second booking or refunds the first."""
    hold = await _hold(session_factory, booth)

    results = await asyncio.gather(
        _finalize(session_factory, payments, hold.id),
        _finalize(session_factory, payments, hold.id),
        return_exceptions=True,
    )

    bookings = await _bookings(session_factory)
    assert len(bookings) == 1
    for result in results:
        if isinstance(result, Exception):
            assert isinstance(result, HoldNotFound)
        else:
            assert result.booking_id == bookings[0].id
    assert payments.refunds == {}
