"""
Availability index: per-booth slot status for a venue, date and party size.

Status precedence per slot:
  booked     a confirmed booking covers it
  held       a live hold covers it and the caller does not own that hold
  available  otherwise

Everything is read live from the holds and bookings tables. The booth list
itself comes from the cached catalog. Nothing here guards a write: a slot
shown as available can still come back as a Conflict from create_hold, and
that is the only answer that counts.
"""

from datetime import date, time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.db.base import utcnow
from venue_booking.models.booking import Booking, STATUS_CONFIRMED
from venue_booking.models.hold import Hold, HOLD_ACTIVE
from venue_booking.schemas.availability import (
    BoothAvailability, SessionOffer, SlotAvailability,
)
from venue_booking.services.catalog_service import list_booths
from venue_booking.services.slots import covers, day_slots, split_session
from venue_booking.core.logging import get_logger

logger = get_logger(__name__)


def offerable_sessions(slots: list[SlotAvailability], session_hours: int) -> list[SessionOffer]:
    """
    Combine consecutive slots into sessions of `session_hours`.

    A start is offerable only if it and the next session_hours-1 slots are all
    available. An unavailable run disables the offer; it is never shortened.
    Offers come back in slot order so the earliest valid start is first.
    """
    offers = []
    for i in range(len(slots) - session_hours + 1):
        run = slots[i:i + session_hours]
        offers.append(
            SessionOffer(
                start_time=run[0].start_time,
                end_time=run[-1].end_time,
                offerable=all(s.status == "available" for s in run),
            )
        )
    return offers


async def get_availability(
    db: AsyncSession,
    venue: str,
    booking_date: date,
    party_size: int,
    session_hours: int = 1,
    owner_id: Optional[str] = None,
) -> list[BoothAvailability]:
    booths = [b for b in await list_booths(db, venue) if b.capacity >= party_size]
    if not booths:
        return []

    booth_ids = [b.id for b in booths]
    now = utcnow()

    booked_rows = await db.execute(
        select(Booking.booth_id, Booking.start_time, Booking.end_time).where(
            Booking.booth_id.in_(booth_ids),
            Booking.booking_date == booking_date,
            Booking.status == STATUS_CONFIRMED,
        )
    )
    held_rows = await db.execute(
        select(Hold.booth_id, Hold.slot_start, Hold.slot_end, Hold.owner_id).where(
            Hold.booth_id.in_(booth_ids),
            Hold.booking_date == booking_date,
            Hold.status == HOLD_ACTIVE,
            Hold.expires_at > now,
        )
    )

    booked: dict[int, list[tuple[time, time]]] = {}
    for booth_id, start, end in booked_rows.all():
        booked.setdefault(booth_id, []).append((start, end))

    held: dict[int, list[tuple[time, time]]] = {}
    for booth_id, start, end, hold_owner in held_rows.all():
        if owner_id is not None and hold_owner == owner_id:
            continue
        held.setdefault(booth_id, []).append((start, end))

    results = []
    for booth in booths:
        slots = []
        for slot in day_slots():
            if any(covers(s, e, slot) for s, e in booked.get(booth.id, [])):
                slot_status = "booked"
            elif any(covers(s, e, slot) for s, e in held.get(booth.id, [])):
                slot_status = "held"
            else:
                slot_status = "available"
            slots.append(SlotAvailability(start_time=slot[0], end_time=slot[1], status=slot_status))

        results.append(
            BoothAvailability(
                booth=booth,
                slots=slots,
                sessions=offerable_sessions(slots, session_hours),
            )
        )

    logger.debug(
        "availability_computed",
        venue=venue,
        booking_date=str(booking_date),
        party_size=party_size,
        booths=len(results),
    )
    return results


async def find_booths_for_session(
    db: AsyncSession,
    venue: str,
    booking_date: date,
    start: time,
    end: time,
    party_size: int,
    owner_id: Optional[str] = None,
) -> list[BoothAvailability]:
    """Booths whose every slot in [start, end) is available to this caller."""
    wanted = split_session(start, end)
    availability = await get_availability(
        db, venue, booking_date, party_size, session_hours=len(wanted), owner_id=owner_id,
    )
    return [
        entry for entry in availability
        if any(
            offer.offerable and offer.start_time == start and offer.end_time == end
            for offer in entry.sessions
        )
    ]
