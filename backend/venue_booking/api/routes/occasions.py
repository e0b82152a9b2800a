"""
Occasion endpoints: staff-created events sold through a share link.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.security import verify_admin_token
from venue_booking.db.session import get_db
from venue_booking.schemas.booking import BookingResult, OccasionTicketPurchase
from venue_booking.schemas.occasion import OccasionCreate, OccasionCreated, OccasionDetails
from venue_booking.services.booking_service import create_occasion, purchase_tickets
from venue_booking.services.capacity_service import occasion_summary
from venue_booking.services.interfaces.payment import PaymentPort
from venue_booking.services.link_service import resolve_share_link
from venue_booking.services.strategy_factory import get_payments

router = APIRouter(prefix="/occasions", tags=["Occasions"])


@router.post("/", response_model=OccasionCreated, status_code=status.HTTP_201_CREATED)
async def create_occasion_endpoint(
    occasion_data: OccasionCreate,
    _: str = Depends(verify_admin_token),
    db: AsyncSession = Depends(get_db),
):
    return await create_occasion(db, occasion_data)


@router.get("/{share_token}", response_model=OccasionDetails)
async def occasion_details_endpoint(share_token: str, db: AsyncSession = Depends(get_db)):
    return await occasion_summary(db, share_token)


@router.post("/{share_token}/tickets", response_model=BookingResult, status_code=status.HTTP_201_CREATED)
async def buy_occasion_tickets_endpoint(
    share_token: str,
    request: OccasionTicketPurchase,
    db: AsyncSession = Depends(get_db),
    payments: PaymentPort = Depends(get_payments),
):
    """409 when the occasion does not have enough tickets left."""
    occasion = await resolve_share_link(db, share_token)
    return await purchase_tickets(
        db,
        payments,
        occasion.venue,
        occasion.booking_date,
        request.ticket_quantity,
        request.payment_token,
        request.customer,
        request.date_of_birth,
        group_token=share_token,
    )
