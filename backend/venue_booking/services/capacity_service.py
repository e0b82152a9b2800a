"""
Capacity aggregation for roots (group organisers and occasions).

remaining = root.capacity - sum(ticket_quantity of non-cancelled children)

The read is one SQL statement (correlated subquery), so it never mixes a
capacity from one moment with a child total from another.

The write side is reserve_tickets: a single conditional UPDATE on the root's
reserved_quantity:

  UPDATE bookings SET reserved_quantity = reserved_quantity + :q
  WHERE id = :root AND (capacity IS NULL OR reserved_quantity + :q <= capacity)

Two buyers racing for the last ticket both reach this statement; the
database applies them one at a time and the second matches zero rows.
reserved_quantity moves in the same transaction as every child insert,
cancel and delete, so it always equals the children sum above.
"""

from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from venue_booking.core.errors import BookingNotFound, LinkNotFound
from venue_booking.core.logging import get_logger
from venue_booking.models.booking import Booking, OCCASION, STATUS_CANCELLED
from venue_booking.schemas.occasion import OccasionDetails
from venue_booking.services.link_service import resolve_share_link

logger = get_logger(__name__)

Child = aliased(Booking)


def _children_totals():
    """Correlated (ticket sum, booking count) over a root's live children."""
    live = (Child.parent_booking_id == Booking.id) & (Child.status != STATUS_CANCELLED)
    tickets = (
        select(func.coalesce(func.sum(Child.ticket_quantity), 0)).where(live).scalar_subquery()
    )
    bookings = select(func.count(Child.id)).where(live).scalar_subquery()
    return tickets, bookings


async def remaining_capacity(db: AsyncSession, root_booking_id: int) -> Optional[int]:
    """Tickets still available under a root; None for uncapped roots."""
    tickets, _ = _children_totals()
    result = await db.execute(
        select(Booking.capacity, tickets).where(Booking.id == root_booking_id)
    )
    row = result.one_or_none()
    if row is None:
        raise BookingNotFound()

    capacity, used = row
    if capacity is None:
        return None
    return capacity - used


async def reserve_tickets(db: AsyncSession, root_booking_id: int, quantity: int) -> bool:
    """
    Atomically take `quantity` tickets from a root. Part of the caller's
    transaction; does not commit. False means the root is full.
    """
    result = await db.execute(
        update(Booking)
        .where(
            Booking.id == root_booking_id,
            (Booking.capacity.is_(None)) | (Booking.reserved_quantity + quantity <= Booking.capacity),
        )
        .values(reserved_quantity=Booking.reserved_quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def return_tickets(db: AsyncSession, root_booking_id: int, quantity: int) -> None:
    """Give tickets back to a root (cancelled or abandoned child). Does not commit."""
    await db.execute(
        update(Booking)
        .where(Booking.id == root_booking_id, Booking.reserved_quantity >= quantity)
        .values(reserved_quantity=Booking.reserved_quantity - quantity)
        .execution_options(synchronize_session=False)
    )


async def occasion_summary(db: AsyncSession, share_token: str) -> OccasionDetails:
    """Occasion page data: headline details plus live attendance totals."""
    root = await resolve_share_link(db, share_token)
    if root.booking_type != OCCASION:
        raise LinkNotFound()

    tickets, bookings = _children_totals()
    result = await db.execute(select(tickets, bookings).where(Booking.id == root.id))
    total_guests, total_bookings = result.one()

    return OccasionDetails(
        id=root.id,
        occasion_name=root.occasion_name or "",
        booking_date=root.booking_date,
        venue=root.venue,
        capacity=root.capacity or 0,
        ticket_price_cents=root.ticket_price_cents or 0,
        share_token=root.share_token,
        organiser_name=root.customer_name,
        total_guests=total_guests,
        total_bookings=total_bookings,
        remaining_capacity=(root.capacity or 0) - total_guests,
    )
