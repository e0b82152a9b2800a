"""
One-hour slot arithmetic.

Slots are fixed-width and contiguous per booth and day, from
KARAOKE_OPEN_HOUR to KARAOKE_CLOSE_HOUR. Longer sessions are runs of
consecutive slots and never exist on their own.
"""

from datetime import time

from venue_booking.core.config import get_settings
from venue_booking.core.errors import BookingValidationError

Slot = tuple[time, time]


def day_slots() -> list[Slot]:
    settings = get_settings()
    return [
        (time(hour), time(hour + 1))
        for hour in range(settings.KARAOKE_OPEN_HOUR, settings.KARAOKE_CLOSE_HOUR)
    ]


def split_session(start: time, end: time) -> list[Slot]:
    """Break [start, end) into its one-hour slots, validating alignment and hours."""
    settings = get_settings()

    if start.minute or start.second or start.microsecond or end.minute or end.second or end.microsecond:
        raise BookingValidationError("Sessions start and end on the hour.")
    if end <= start:
        raise BookingValidationError("Session end must be after its start.")
    if start.hour < settings.KARAOKE_OPEN_HOUR or end.hour > settings.KARAOKE_CLOSE_HOUR:
        raise BookingValidationError("That time is outside opening hours.")

    hours = end.hour - start.hour
    if hours > settings.MAX_SESSION_HOURS:
        raise BookingValidationError(f"Sessions are at most {settings.MAX_SESSION_HOURS} hours.")

    return [(time(h), time(h + 1)) for h in range(start.hour, end.hour)]


def covers(start: time, end: time, slot: Slot) -> bool:
    return start <= slot[0] and end >= slot[1]
