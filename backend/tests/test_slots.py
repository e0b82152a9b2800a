"""
Tests for the slot grid, session splitting and session offers.
"""

from datetime import time

import pytest
from pydantic import ValidationError

from venue_booking.core.config import Settings
from venue_booking.core.errors import BookingValidationError
from venue_booking.schemas.availability import SlotAvailability
from venue_booking.services.availability_service import offerable_sessions
from venue_booking.services.slots import day_slots, split_session


def test_day_slots_cover_opening_hours():
    slots = day_slots()
    assert slots[0] == (time(17), time(18))
    assert slots[-1] == (time(22), time(23))
    assert all(a[1] == b[0] for a, b in zip(slots, slots[1:]))


def test_split_session():
    assert split_session(time(19), time(21)) == [(time(19), time(20)), (time(20), time(21))]
    with pytest.raises(BookingValidationError):
        split_session(time(21), time(19))


def test_unavailable_run_disables_offer_instead_of_shrinking():
    slots = [
        SlotAvailability(start_time=time(h), end_time=time(h + 1), status=status)
        for h, status in [(19, "available"), (20, "held"), (21, "available"), (22, "available")]
    ]

    offers = offerable_sessions(slots, 2)

    assert [(o.start_time, o.end_time, o.offerable) for o in offers] == [
        (time(19), time(21), False),
        (time(20), time(22), False),
        (time(21), time(23), True),
    ]




@pytest.mark.parametrize("hours", [
    {"KARAOKE_CLOSE_HOUR": 24},
    {"KARAOKE_OPEN_HOUR": 23},
    {"KARAOKE_OPEN_HOUR": 20, "KARAOKE_CLOSE_HOUR": 19},
])
def test_opening_hours_outside_one_day_rejected(hours):
    with pytest.raises(ValidationError):
        Settings(**hours)
