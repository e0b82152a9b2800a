"""
Resolve signed share and guest-list links to their bookings, and build the
public URLs that carry them.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.config import get_settings
from venue_booking.core.errors import LinkNotFound
from venue_booking.core.security import GUEST_LIST_PURPOSE, SHARE_PURPOSE, verify_link_token
from venue_booking.models.booking import Booking, OCCASION, STATUS_CONFIRMED


async def resolve_share_link(db: AsyncSession, share_token: str, for_update: bool = False) -> Booking:
    """
    Root booking behind a share link.

    The signature must verify AND the token must still be the one stored on a
    confirmed shareable root, so a root can revoke its link by rotating it.
    """
    booking_id = verify_link_token(share_token, SHARE_PURPOSE)

    result = await db.execute(
        select(Booking).where(
            Booking.id == booking_id,
            Booking.share_token == share_token,
            Booking.parent_booking_id.is_(None),
            Booking.status == STATUS_CONFIRMED,
        )
    )
    root = result.scalar_one_or_none()
    if root is None or not root.rules.shareable:
        raise LinkNotFound()
    return root


async def resolve_guest_list_link(db: AsyncSession, token: str) -> Booking:
    booking_id = verify_link_token(token, GUEST_LIST_PURPOSE)

    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if booking is None or booking.guest_list_token != token or booking.status != STATUS_CONFIRMED:
        raise LinkNotFound()
    return booking


def guest_list_url(token: str) -> str:
    return f"{get_settings().PUBLIC_BASE_URL}/guest-list?token={token}"


def share_url(booking: Booking) -> str | None:
    if not booking.share_token:
        return None
    section = "occasions" if booking.booking_type == OCCASION else "tickets"
    return f"{get_settings().PUBLIC_BASE_URL}/{section}/{booking.share_token}"
