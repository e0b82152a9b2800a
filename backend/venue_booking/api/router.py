"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from venue_booking.api.routes import availability, booths, bookings, guest_lists, holds, occasions

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(booths.router)
api_router.include_router(availability.router)
api_router.include_router(holds.router)
api_router.include_router(bookings.router)
api_router.include_router(occasions.router)
api_router.include_router(guest_lists.router)
