"""
Tests for the guest roster: ordering, linked groups and saving own guests.
"""

import pytest
from sqlalchemy import select

from venue_booking.core.errors import BookingValidationError, InvalidLink
from venue_booking.models.guest import Guest
from venue_booking.services.booking_service import purchase_tickets
from venue_booking.services.interfaces.sandbox_payment import OK_NONCE
from venue_booking.services.roster_service import (
    get_roster, get_roster_by_token, save_own_guests, save_own_guests_by_token,
)

from conftest import ADULT_DOB, customer, future_date


async def _buy(session_factory, payments, quantity, name, group_token=None):
    async with session_factory() as db:
        return await purchase_tickets(
            db, payments, "manor", future_date(10), quantity, OK_NONCE,
            customer(name, f"{name.lower()}@example.com"), ADULT_DOB, group_token=group_token,
        )


@pytest.fixture
def group(session_factory, payments):
    """Jane's 3-ticket group with Sam's 2-ticket purchase linked to it."""

    async def build():
        root = await _buy(session_factory, payments, 3, "Jane")
        linked = await _buy(session_factory, payments, 2, "Sam", group_token=root.share_token)
        return root, linked

    return build


async def _guest_names(session_factory, booking_id):
    async with session_factory() as db:
        guests = (await db.execute(
            select(Guest).where(Guest.booking_id == booking_id).order_by(Guest.id)
        )).scalars().all()
    return [(g.name, g.is_organiser) for g in guests]


@pytest.mark.asyncio
async def test_roster_merges_own_and_linked_guests(session_factory, group):
    root, linked = await group()

    async with session_factory() as db:
        roster = await get_roster_by_token(db, root.guest_list_token)

    assert [(g.name, g.is_organiser) for g in roster.own_guests] == [("Jane", True), ("", False), ("", False)]
    assert len(roster.linked_groups) == 1
    assert roster.linked_groups[0].booking_id == linked.booking_id
    assert roster.linked_groups[0].customer_name == "Sam"
    assert [g.name for g in roster.linked_groups[0].guests] == ["", ""]
    assert roster.max_guests == 3
    assert roster.total_group_size == 5
    assert roster.booking.share_url.endswith(root.share_token)


@pytest.mark.asyncio
async def test_save_replaces_non_organiser_guests(session_factory, group):
    root, linked = await group()

    async with session_factory() as db:
        roster = await save_own_guests(db, root.booking_id, ["Jane", "", "Sam"])

    assert [(g.name, g.is_organiser) for g in roster.own_guests] == [("Jane", True), ("Sam", False)]
    assert await _guest_names(session_factory, root.booking_id) == [("Jane", True), ("Sam", False)]
    # Linked booking untouched
    assert await _guest_names(session_factory, linked.booking_id) == [("", False), ("", False)]


@pytest.mark.asyncio
async def test_save_renames_organiser_and_trims(session_factory, group):
    root, _ = await group()

    async with session_factory() as db:
        roster = await save_own_guests(db, root.booking_id, ["  Jane Doe ", "  Ann  ", "Bob"])

    assert [g.name for g in roster.own_guests] == ["Jane Doe", "Ann", "Bob"]


@pytest.mark.asyncio
async def test_blank_organiser_name_rejected(session_factory, group):
    root, _ = await group()

    async with session_factory() as db:
        with pytest.raises(BookingValidationError) as exc_info:
            await save_own_guests(db, root.booking_id, ["   ", "Ann"])
    assert exc_info.value.detail == "Organiser name cannot be empty"

    assert await _guest_names(session_factory, root.booking_id) == [("Jane", True), ("", False), ("", False)]


@pytest.mark.asyncio
async def test_too_many_names_rejected(session_factory, group):
    root, _ = await group()

    async with session_factory() as db:
        with pytest.raises(BookingValidationError):
            await save_own_guests(db, root.booking_id, ["Jane", "Ann", "Bob", "Cat"])


@pytest.mark.asyncio
async def test_linked_token_edits_only_its_own_booking(session_factory, group):
    root, linked = await group()

    async with session_factory() as db:
        roster = await save_own_guests_by_token(db, linked.guest_list_token, ["Ann", "Bob"])

    assert [(g.name, g.is_organiser) for g in roster.own_guests] == [("Ann", False), ("Bob", False)]
    assert roster.linked_groups == []
    assert await _guest_names(session_factory, root.booking_id) == [("Jane", True), ("", False), ("", False)]

    async with session_factory() as db:
        root_roster = await get_roster(db, root.booking_id)
    assert [g.name for g in root_roster.linked_groups[0].guests] == ["Ann", "Bob"]


@pytest.mark.asyncio
async def test_share_token_cannot_open_guest_list(session_factory, group):
    root, _ = await group()

    async with session_factory() as db:
        with pytest.raises(InvalidLink):
            await get_roster_by_token(db, root.share_token)
