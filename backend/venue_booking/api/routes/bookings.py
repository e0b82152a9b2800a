"""
Booking endpoints: finalize karaoke holds, buy tickets, cancel.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.security import verify_admin_token
from venue_booking.db.session import get_db
from venue_booking.schemas.booking import (
    BookingCancelResponse, BookingResult, KaraokeFinalize, RemainingCapacityResponse,
    TicketGroupResponse, TicketPurchase,
)
from venue_booking.services.booking_service import (
    cancel_booking, finalize_karaoke, get_booking, get_ticket_group, purchase_tickets,
)
from venue_booking.services.capacity_service import remaining_capacity
from venue_booking.services.interfaces.payment import PaymentPort
from venue_booking.services.strategy_factory import get_payments

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/karaoke", response_model=BookingResult, status_code=status.HTTP_201_CREATED)
async def finalize_karaoke_endpoint(
    request: KaraokeFinalize,
    db: AsyncSession = Depends(get_db),
    payments: PaymentPort = Depends(get_payments),
):
    """
    Pay for a held booth session.

    410 if the hold timed out (before or during payment; a charge taken in
    that window is refunded), 402 if the card was declined.
    """
    return await finalize_karaoke(
        db, payments, request.hold_id, request.payment_token, request.customer, request.party_size,
    )


@router.post("/tickets", response_model=BookingResult, status_code=status.HTTP_201_CREATED)
async def purchase_tickets_endpoint(
    request: TicketPurchase,
    db: AsyncSession = Depends(get_db),
    payments: PaymentPort = Depends(get_payments),
):
    """
    Buy priority tickets. Without group_token this opens a new group and
    returns its share link; with one it joins that group.
    """
    return await purchase_tickets(
        db,
        payments,
        request.venue,
        request.booking_date,
        request.ticket_quantity,
        request.payment_token,
        request.customer,
        request.date_of_birth,
        group_token=request.group_token,
    )


@router.get("/groups/{share_token}", response_model=TicketGroupResponse)
async def ticket_group_endpoint(share_token: str, db: AsyncSession = Depends(get_db)):
    return await get_ticket_group(db, share_token)


@router.get("/{booking_id}/capacity", response_model=RemainingCapacityResponse)
async def remaining_capacity_endpoint(booking_id: int, db: AsyncSession = Depends(get_db)):
    booking = await get_booking(db, booking_id)
    return RemainingCapacityResponse(
        booking_id=booking.id,
        capacity=booking.capacity,
        remaining_capacity=await remaining_capacity(db, booking.id),
    )


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    _: str = Depends(verify_admin_token),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking, freeing its slots or returning its tickets. Staff only."""
    booking = await cancel_booking(db, booking_id)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.status,
    )
