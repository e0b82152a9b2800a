"""
Typed booking errors.

Services raise these directly, the same way they would raise a plain
HTTPException. Each carries a stable `code` so clients can route the user
back to the right step (slot selection, quantity, payment) without parsing
messages. The handler registered in main.py renders them as
{"error": code, "detail": message}.
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class BookingError(HTTPException):
    code: str = "booking_error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Booking request failed"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class SlotConflict(BookingError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "That time was just taken. Please pick another slot."


class HoldExpired(BookingError):
    code = "hold_expired"
    status_code = status.HTTP_410_GONE
    default_detail = "Your reservation timed out. Please choose your slot again."


class HoldNotFound(BookingError):
    code = "hold_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Reservation not found. Please choose your slot again."


class CapacityExceeded(BookingError):
    code = "capacity_exceeded"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Not enough tickets left. Please reduce the number of tickets."


class PaymentFailed(BookingError):
    code = "payment_failed"
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_detail = "Payment was declined. Please try another card."


class BookingValidationError(BookingError):
    code = "validation_error"
    status_code = 422
    default_detail = "Some booking details are missing or invalid."


class LinkNotFound(BookingError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "This link is invalid or has expired."


class InvalidLink(BookingError):
    code = "invalid_link"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "This link is not valid."


class BookingNotFound(BookingError):
    code = "booking_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Booking not found."


class ReservationLost(BookingError):
    code = "reservation_lost"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Your tickets were released before payment completed. You have not been charged."


class AlreadyCancelled(BookingError):
    code = "already_cancelled"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Booking is already cancelled."


class PaymentInProgress(BookingError):
    code = "payment_in_progress"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Payment for this booking is still in progress. Try again shortly."


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.detail},
    )
