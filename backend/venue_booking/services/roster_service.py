"""
Guest roster: a booking's own guest list merged with the lists of every
booking made through its share link.

Reads never cross-write: the roster of a root shows linked groups read-only,
and save_own_guests only ever touches rows of the booking the guest-list
token resolves to.
"""

from collections import defaultdict

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.errors import BookingValidationError
from venue_booking.core.logging import get_logger
from venue_booking.models.booking import Booking, STATUS_CONFIRMED
from venue_booking.models.booth import Booth
from venue_booking.models.guest import Guest
from venue_booking.schemas.roster import BookingSummary, GuestEntry, LinkedGroup, RosterResponse
from venue_booking.services.booking_service import get_booking
from venue_booking.services.link_service import resolve_guest_list_link, share_url

logger = get_logger(__name__)

GUEST_ORDER = (Guest.is_organiser.desc(), Guest.created_at, Guest.id)


async def _own_guests(db: AsyncSession, booking_id: int) -> list[Guest]:
    result = await db.execute(select(Guest).where(Guest.booking_id == booking_id).order_by(*GUEST_ORDER))
    return list(result.scalars().all())


async def _booth_name(db: AsyncSession, booking: Booking) -> str | None:
    if booking.booth_id is None:
        return None
    result = await db.execute(select(Booth.name).where(Booth.id == booking.booth_id))
    return result.scalar_one_or_none()


async def get_roster(db: AsyncSession, booking_id: int) -> RosterResponse:
    """
    Own guests (organiser first, then creation order) plus one group per
    confirmed linked booking, in creation order.
    """
    booking = await get_booking(db, booking_id)
    own = await _own_guests(db, booking.id)

    children_result = await db.execute(
        select(Booking)
        .where(Booking.parent_booking_id == booking.id, Booking.status == STATUS_CONFIRMED)
        .order_by(Booking.created_at, Booking.id)
    )
    children = list(children_result.scalars().all())

    guests_by_booking = defaultdict(list)
    if children:
        guest_result = await db.execute(
            select(Guest)
            .where(Guest.booking_id.in_([child.id for child in children]))
            .order_by(*GUEST_ORDER)
        )
        for guest in guest_result.scalars().all():
            guests_by_booking[guest.booking_id].append(guest)

    linked_groups = [
        LinkedGroup(
            booking_id=child.id,
            customer_name=child.customer_name,
            ticket_quantity=child.ticket_quantity,
            guests=[GuestEntry.model_validate(g) for g in guests_by_booking[child.id]],
        )
        for child in children
    ]

    return RosterResponse(
        booking=BookingSummary(
            booking_id=booking.id,
            booking_type=booking.booking_type,
            reference_code=booking.reference_code,
            venue=booking.venue,
            booking_date=booking.booking_date,
            start_time=booking.start_time,
            end_time=booking.end_time,
            booth_name=await _booth_name(db, booking),
            ticket_quantity=booking.ticket_quantity,
            share_url=share_url(booking),
        ),
        own_guests=[GuestEntry.model_validate(g) for g in own],
        linked_groups=linked_groups,
        max_guests=booking.ticket_quantity,
        total_group_size=booking.ticket_quantity + sum(len(group.guests) for group in linked_groups),
    )


async def save_own_guests(db: AsyncSession, booking_id: int, names: list[str]) -> RosterResponse:
    """
    Replace a booking's own guest list with `names`, given in roster order.

    If the booking has an organiser row, names[0] is the organiser's name and
    may not be blank. Every other entry is trimmed, blanks are dropped, and
    the result replaces all non-organiser rows (last write wins). Guests of
    linked bookings are never touched.
    """
    booking = await get_booking(db, booking_id)
    own = await _own_guests(db, booking.id)
    organiser = next((g for g in own if g.is_organiser), None)

    remaining = list(names)
    if organiser is not None:
        organiser_name = remaining.pop(0).strip() if remaining else ""
        if not organiser_name:
            raise BookingValidationError("Organiser name cannot be empty")

    guest_names = [name.strip() for name in remaining if name and name.strip()]
    free_slots = booking.ticket_quantity - (1 if organiser is not None else 0)
    if len(guest_names) > free_slots:
        raise BookingValidationError(
            f"This booking has room for {free_slots} more guests. Please remove some names."
        )

    if organiser is not None:
        organiser.name = organiser_name

    await db.execute(
        delete(Guest)
        .where(Guest.booking_id == booking.id, Guest.is_organiser.is_(False))
        .execution_options(synchronize_session=False)
    )
    db.add_all(Guest(booking_id=booking.id, name=name, is_organiser=False) for name in guest_names)
    await db.commit()

    logger.info("guest_list_saved", booking_id=booking.id, guests=len(guest_names))
    return await get_roster(db, booking.id)


async def get_roster_by_token(db: AsyncSession, token: str) -> RosterResponse:
    booking = await resolve_guest_list_link(db, token)
    return await get_roster(db, booking.id)


async def save_own_guests_by_token(db: AsyncSession, token: str, names: list[str]) -> RosterResponse:
    booking = await resolve_guest_list_link(db, token)
    return await save_own_guests(db, booking.id, names)
