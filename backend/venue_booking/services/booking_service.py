"""
Booking finalizer: turns a hold or a ticket request plus a payment token into
a confirmed booking.

CONCURRENCY STRATEGY: Claim first, charge second, compensate on failure
=======================================================================

Problem:
  A booking must never exist without its resource (slot or tickets) and a
  charge must never be kept without its booking. The payment provider is an
  external call, so it cannot share a database transaction with either.

Karaoke (hold-backed):
  1. validate_hold: the hold is live right now
  2. charge hourly_rate * hours, idempotency key "hold-<id>"
     (declined -> PaymentFailed, hold untouched, user can retry)
  3. one transaction: insert the booking, consume the hold with a conditional
     UPDATE (active AND expires_at > now), move its slot claims, create guests
  4. anything failing after the charge -> rollback + refund

  The hold can expire between steps 1 and 3. The conditional UPDATE in step
  3 matches zero rows in that case and the charge is refunded.

Tickets (capacity-backed):
  1. one transaction: guarded UPDATE on the root's reserved_quantity
     (capacity IS NULL OR reserved_quantity + q <= capacity) and insert the
     child as `pending`. Zero rows -> CapacityExceeded, nothing charged.
  2. charge, idempotency key "booking-<id>"
  3. declined -> delete the pending child and return its tickets
     (state as if never called) -> PaymentFailed
  4. success -> confirm the child with a conditional UPDATE (still pending),
     create guests and its guest-list token. Zero rows means a cancel or the
     stale-reservation sweep already returned the tickets -> refund,
     ReservationLost

  The pending child counts against capacity while the card is charged, so
  two buyers of the last ticket can never both be charged for it.

Rejections are raised, never clamped and never retried silently.
"""

import secrets
import string
import time
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.config import get_settings
from venue_booking.core.errors import (
    AlreadyCancelled, BookingNotFound, BookingValidationError, CapacityExceeded, HoldExpired, HoldNotFound,
    PaymentFailed, PaymentInProgress, ReservationLost,
)
from venue_booking.core.logging import get_logger
from venue_booking.core.metrics import capacity_rejections, finalize_latency, record_finalize, record_refund
from venue_booking.core.security import create_guest_list_token, create_share_token
from venue_booking.db.base import utcnow
from venue_booking.models.booking import (
    Booking, KARAOKE, OCCASION, PRIORITY_TICKET,
    STATUS_CANCELLED, STATUS_CONFIRMED, STATUS_PENDING,
)
from venue_booking.models.guest import Guest
from venue_booking.models.hold import SlotClaim
from venue_booking.schemas.booking import BookingResult, CustomerDetails, TicketGroupResponse
from venue_booking.schemas.occasion import OccasionCreate, OccasionCreated
from venue_booking.services.capacity_service import remaining_capacity, reserve_tickets, return_tickets
from venue_booking.services.catalog_service import get_booth
from venue_booking.services.hold_service import consume_hold, validate_hold
from venue_booking.services.interfaces.payment import PaymentDeclined, PaymentPort
from venue_booking.services.link_service import guest_list_url, resolve_share_link, share_url
from venue_booking.services.slots import split_session

logger = get_logger(__name__)
settings = get_settings()

REFERENCE_ALPHABET = "".join(c for c in string.ascii_uppercase + string.digits if c not in "0O1I")
REFERENCE_LENGTH = 6


def _generate_reference_code() -> str:
    suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_LENGTH))
    return f"{settings.REFERENCE_PREFIX}-{suffix}"


def _guest_rows(booking: Booking) -> list[Guest]:
    """
    Roster rows for a freshly confirmed booking.

    A booking's guest slots always number ticket_quantity. Types that model
    the organiser spend one of those slots on a named organiser row, the rest
    start as empty placeholders.
    """
    open_slots = booking.ticket_quantity
    guests = []
    if booking.rules.includes_organiser_slot:
        guests.append(Guest(booking_id=booking.id, name=booking.customer_name, is_organiser=True))
        open_slots -= 1
    guests.extend(Guest(booking_id=booking.id, name="", is_organiser=False) for _ in range(open_slots))
    return guests


def _age_on(date_of_birth: date, today: date) -> int:
    before_birthday = (today.month, today.day) < (date_of_birth.month, date_of_birth.day)
    return today.year - date_of_birth.year - int(before_birthday)


def _check_ticket_request(quantity: int, date_of_birth: date, booking_date: date):
    today = date.today()
    if booking_date < today:
        raise BookingValidationError("That date has already passed.")
    if quantity < 1 or quantity > settings.MAX_TICKETS_PER_PURCHASE:
        raise BookingValidationError(
            f"You can buy between 1 and {settings.MAX_TICKETS_PER_PURCHASE} tickets at a time."
        )
    if _age_on(date_of_birth, today) < settings.MINIMUM_AGE:
        raise BookingValidationError(f"You must be {settings.MINIMUM_AGE} or over to purchase tickets.")


async def _refund(payments: PaymentPort, payment_id: str, amount_cents: int, **context):
    """Compensating refund. A failure here is logged for manual follow-up."""
    try:
        await payments.refund(payment_id, amount_cents)
    except Exception as e:
        record_refund(ok=False)
        logger.error("refund_failed", payment_id=payment_id, amount_cents=amount_cents, error=str(e), **context)
        return
    record_refund(ok=True)
    logger.warning("payment_refunded", payment_id=payment_id, amount_cents=amount_cents, **context)


async def _discard_reservation(db: AsyncSession, booking_id: int, root_id: Optional[int], quantity: int) -> bool:
    """
    Delete a still-pending booking and give its tickets back to the root.
    Conditional on status, so a reservation confirmed meanwhile is left alone.
    """
    result = await db.execute(
        delete(Booking)
        .where(Booking.id == booking_id, Booking.status == STATUS_PENDING)
        .execution_options(synchronize_session=False)
    )
    discarded = result.rowcount == 1
    if discarded and root_id is not None:
        await return_tickets(db, root_id, quantity)
    await db.commit()
    return discarded


def _result(booking: Booking) -> BookingResult:
    return BookingResult(
        booking_id=booking.id,
        reference_code=booking.reference_code,
        guest_list_token=booking.guest_list_token,
        guest_list_url=guest_list_url(booking.guest_list_token),
        payment_id=booking.payment_id,
        total_amount_cents=booking.total_amount_cents,
        share_token=booking.share_token,
        share_url=share_url(booking),
    )


async def _booking_paid_by(db: AsyncSession, hold_id: str, payment_id: str) -> Optional[Booking]:
    result = await db.execute(
        select(Booking).where(
            Booking.hold_id == hold_id,
            Booking.payment_id == payment_id,
            Booking.status == STATUS_CONFIRMED,
        )
    )
    return result.scalar_one_or_none()


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if booking is None:
        raise BookingNotFound()
    return booking


async def finalize_karaoke(
    db: AsyncSession,
    payments: PaymentPort,
    hold_id: str,
    payment_token: str,
    customer: CustomerDetails,
    party_size: int,
) -> BookingResult:
    """Redeem a live hold and a card token into a confirmed booth booking."""
    started = time.perf_counter()
    kind = KARAOKE

    try:
        hold = await validate_hold(db, hold_id)
    except (HoldExpired, HoldNotFound) as e:
        record_finalize(kind, e.code)
        raise

    booth = await get_booth(db, hold.booth_id)
    if party_size > booth.capacity:
        record_finalize(kind, "validation_error")
        raise BookingValidationError(f"{booth.name} fits up to {booth.capacity} guests.")

    hours = len(split_session(hold.slot_start, hold.slot_end))
    amount = booth.hourly_rate_cents * hours
    booking_date, slot_start, slot_end = hold.booking_date, hold.slot_start, hold.slot_end
    await db.commit()  # no transaction stays open across the provider call

    try:
        payment_id = await payments.charge(payment_token, amount, idempotency_key=f"hold-{hold_id}")
    except PaymentDeclined as e:
        record_finalize(kind, "payment_failed")
        logger.info("payment_declined", hold_id=hold_id, amount_cents=amount, reason=e.message)
        raise PaymentFailed()

    booking = Booking(
        booking_type=KARAOKE,
        venue=booth.venue,
        booth_id=booth.id,
        hold_id=hold_id,
        booking_date=booking_date,
        start_time=slot_start,
        end_time=slot_end,
        ticket_quantity=party_size,
        total_amount_cents=amount,
        status=STATUS_CONFIRMED,
        reference_code=_generate_reference_code(),
        customer_name=customer.name,
        customer_email=customer.email,
        customer_phone=customer.phone,
        payment_id=payment_id,
    )
    try:
        db.add(booking)
        await db.flush()

        if not await consume_hold(db, hold_id, booking.id):
            raise HoldExpired()

        booking.guest_list_token = create_guest_list_token(booking.id)
        db.add_all(_guest_rows(booking))
        await db.commit()
    except Exception as e:
        await db.rollback()
        if isinstance(e, HoldExpired):
            existing = await _booking_paid_by(db, hold_id, payment_id)
            if existing is not None:
                # Same hold submitted twice: the charge was deduplicated and
                # already belongs to the booking that consumed the hold.
                logger.info("karaoke_finalize_duplicate", hold_id=hold_id, booking_id=existing.id)
                return _result(existing)
        record_finalize(kind, getattr(e, "code", "error"))
        logger.warning("karaoke_finalize_failed_after_charge", hold_id=hold_id, error=repr(e))
        await _refund(payments, payment_id, amount, hold_id=hold_id)
        raise

    record_finalize(kind, "success")
    finalize_latency.labels(kind=kind).observe(time.perf_counter() - started)
    logger.info(
        "booking_finalized",
        kind=kind,
        booking_id=booking.id,
        hold_id=hold_id,
        booth_id=booking.booth_id,
        hours=hours,
        amount_cents=amount,
    )
    return _result(booking)


async def _purchase(
    db: AsyncSession,
    payments: PaymentPort,
    booking_type: str,
    venue: str,
    booking_date: date,
    quantity: int,
    unit_price_cents: int,
    payment_token: str,
    customer: CustomerDetails,
    root: Optional[Booking] = None,
) -> BookingResult:
    started = time.perf_counter()
    kind = "tickets"
    root_id = root.id if root is not None else None
    amount = unit_price_cents * quantity

    if root_id is not None:
        remaining = await remaining_capacity(db, root_id)
        if remaining is not None and remaining < quantity:
            await db.rollback()
            capacity_rejections.inc()
            record_finalize(kind, "capacity")
            raise CapacityExceeded(
                f"Only {max(remaining, 0)} tickets left. Please reduce the number of tickets."
            )

        if not await reserve_tickets(db, root_id, quantity):
            await db.rollback()
            capacity_rejections.inc()
            record_finalize(kind, "capacity")
            logger.info("ticket_reservation_rejected", root_booking_id=root_id, quantity=quantity)
            raise CapacityExceeded()

    booking = Booking(
        parent_booking_id=root_id,
        booking_type=booking_type,
        venue=venue,
        booking_date=booking_date,
        ticket_quantity=quantity,
        ticket_price_cents=unit_price_cents,
        total_amount_cents=amount,
        status=STATUS_PENDING,
        reference_code=_generate_reference_code(),
        customer_name=customer.name,
        customer_email=customer.email,
        customer_phone=customer.phone,
    )
    db.add(booking)
    await db.flush()
    booking_id = booking.id
    await db.commit()

    logger.info("tickets_reserved", booking_id=booking_id, root_booking_id=root_id, quantity=quantity)

    try:
        payment_id = await payments.charge(payment_token, amount, idempotency_key=f"booking-{booking_id}")
    except PaymentDeclined as e:
        await _discard_reservation(db, booking_id, root_id, quantity)
        record_finalize(kind, "payment_failed")
        logger.info("payment_declined", booking_id=booking_id, amount_cents=amount, reason=e.message)
        raise PaymentFailed()

    try:
        # Only a still-pending reservation may be confirmed; a cancel or the
        # stale-reservation sweep may already have returned its tickets.
        confirmed = await db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == STATUS_PENDING)
            .values(
                status=STATUS_CONFIRMED,
                payment_id=payment_id,
                guest_list_token=create_guest_list_token(booking_id),
                share_token=create_share_token(booking_id) if booking.rules.shareable else None,
            )
            .execution_options(synchronize_session=False)
        )
        if confirmed.rowcount != 1:
            raise ReservationLost()
        db.add_all(_guest_rows(booking))
        await db.commit()
    except Exception as e:
        await db.rollback()
        record_finalize(kind, "reservation_lost" if isinstance(e, ReservationLost) else "error")
        logger.warning("ticket_confirm_failed_after_charge", booking_id=booking_id, error=repr(e))
        await _refund(payments, payment_id, amount, booking_id=booking_id)
        await _discard_reservation(db, booking_id, root_id, quantity)
        raise

    await db.refresh(booking)

    record_finalize(kind, "success")
    finalize_latency.labels(kind=kind).observe(time.perf_counter() - started)
    logger.info(
        "booking_finalized",
        kind=kind,
        booking_type=booking_type,
        booking_id=booking_id,
        root_booking_id=root_id,
        quantity=quantity,
        amount_cents=amount,
    )
    return _result(booking)


async def purchase_tickets(
    db: AsyncSession,
    payments: PaymentPort,
    venue: str,
    booking_date: date,
    quantity: int,
    payment_token: str,
    customer: CustomerDetails,
    date_of_birth: date,
    group_token: Optional[str] = None,
) -> BookingResult:
    """
    Buy tickets. Without a group token this is an organiser purchase that
    opens a new shareable group; with one it joins that group (or occasion)
    under the root's capacity.
    """
    if group_token is None:
        _check_ticket_request(quantity, date_of_birth, booking_date)
        return await _purchase(
            db, payments, PRIORITY_TICKET, venue, booking_date, quantity,
            settings.PRIORITY_TICKET_PRICE_CENTS, payment_token, customer,
        )

    root = await resolve_share_link(db, group_token)
    _check_ticket_request(quantity, date_of_birth, root.booking_date)

    if root.booking_type == OCCASION:
        unit_price = root.ticket_price_cents if root.ticket_price_cents is not None else settings.DEFAULT_OCCASION_TICKET_PRICE_CENTS
    else:
        unit_price = settings.PRIORITY_TICKET_PRICE_CENTS

    return await _purchase(
        db, payments, root.rules.linked_type, root.venue, root.booking_date, quantity,
        unit_price, payment_token, customer, root=root,
    )


async def get_ticket_group(db: AsyncSession, share_token: str) -> TicketGroupResponse:
    """Details shown on the share-link purchase page."""
    root = await resolve_share_link(db, share_token)
    return TicketGroupResponse(
        organiser_name=root.customer_name,
        venue=root.venue,
        booking_date=root.booking_date,
        parent_booking_id=root.id,
        remaining_capacity=await remaining_capacity(db, root.id),
    )


async def create_occasion(db: AsyncSession, data: OccasionCreate) -> OccasionCreated:
    """Staff-created capped root with a share link for ticket buyers."""
    if data.booking_date < date.today():
        raise BookingValidationError("That date has already passed.")

    organiser = data.organiser
    price = data.ticket_price_cents
    occasion = Booking(
        booking_type=OCCASION,
        venue=data.venue,
        booking_date=data.booking_date,
        ticket_quantity=1,
        capacity=data.capacity,
        reserved_quantity=0,
        ticket_price_cents=price if price is not None else settings.DEFAULT_OCCASION_TICKET_PRICE_CENTS,
        occasion_name=data.occasion_name,
        total_amount_cents=0,
        status=STATUS_CONFIRMED,
        reference_code=_generate_reference_code(),
        customer_name=organiser.name,
        customer_email=organiser.email,
        customer_phone=organiser.phone,
    )
    db.add(occasion)
    await db.flush()

    occasion.share_token = create_share_token(occasion.id)
    occasion.guest_list_token = create_guest_list_token(occasion.id)
    db.add_all(_guest_rows(occasion))
    await db.commit()

    logger.info(
        "occasion_created",
        booking_id=occasion.id,
        venue=occasion.venue,
        booking_date=str(occasion.booking_date),
        capacity=occasion.capacity,
    )
    return OccasionCreated(
        booking_id=occasion.id,
        reference_code=occasion.reference_code,
        share_token=occasion.share_token,
        share_url=share_url(occasion),
        guest_list_token=occasion.guest_list_token,
        guest_list_url=guest_list_url(occasion.guest_list_token),
    )


async def cancel_booking(db: AsyncSession, booking_id: int) -> Booking:
    """
    Cancel a booking: frees its booth slots and returns its tickets to the
    root, in one transaction.
    """
    booking = await get_booking(db, booking_id)

    if booking.status == STATUS_CANCELLED:
        raise AlreadyCancelled()
    if booking.status == STATUS_PENDING:
        # The purchase owns a pending reservation until it confirms or discards it
        raise PaymentInProgress()

    cancelled = await db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.status == STATUS_CONFIRMED)
        .values(status=STATUS_CANCELLED)
        .execution_options(synchronize_session=False)
    )
    if cancelled.rowcount != 1:
        await db.rollback()
        raise AlreadyCancelled()

    await db.execute(delete(SlotClaim).where(SlotClaim.booking_id == booking.id))
    if booking.parent_booking_id is not None:
        await return_tickets(db, booking.parent_booking_id, booking.ticket_quantity)
    await db.commit()
    await db.refresh(booking)

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        booking_type=booking.booking_type,
        root_booking_id=booking.parent_booking_id,
        tickets_returned=booking.ticket_quantity if booking.parent_booking_id else 0,
    )
    return booking


async def abandon_stale_reservations(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """
    Drop pending ticket reservations whose payment never completed (client
    vanished mid-charge) and return their tickets.
    """
    cutoff = (now or utcnow()) - timedelta(seconds=settings.PENDING_BOOKING_TIMEOUT_SECONDS)
    result = await db.execute(
        select(Booking.id, Booking.parent_booking_id, Booking.ticket_quantity).where(
            Booking.status == STATUS_PENDING,
            Booking.created_at < cutoff,
        )
    )
    stale = result.all()
    await db.commit()

    abandoned = 0
    for booking_id, root_id, quantity in stale:
        if await _discard_reservation(db, booking_id, root_id, quantity):
            abandoned += 1

    if abandoned:
        logger.info("pending_reservations_abandoned", count=abandoned)
    return abandoned
