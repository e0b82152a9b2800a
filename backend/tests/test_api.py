"""
End-to-end tests over HTTP: booths, availability, holds, bookings,
occasions and guest lists.
"""

import asyncio

import pytest
from httpx import AsyncClient

from venue_booking.services.interfaces.sandbox_payment import DECLINED_NONCE, OK_NONCE

from conftest import ADMIN_HEADERS, future_date

CUSTOMER = {"name": "Jane", "email": "jane@example.com"}


def _hold_body(booth_id, start="19:00:00", end="20:00:00", owner_id="client-a"):
    return {
        "booth_id": booth_id,
        "booking_date": future_date().isoformat(),
        "start_time": start,
        "end_time": end,
        "owner_id": owner_id,
    }


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"
    assert response.json()["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"


@pytest.mark.asyncio
async def test_metrics_exposed(client: AsyncClient):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "hold_attempts_total" in response.text


@pytest.mark.asyncio
async def test_create_booth_requires_staff_token(client: AsyncClient):
    body = {"venue": "manor", "name": "Neon Room", "capacity": 8, "hourly_rate_cents": 6000}

    response = await client.post("/api/v1/booths/", json=body)
    assert response.status_code == 401

    response = await client.post("/api/v1/booths/", json=body, headers=ADMIN_HEADERS)
    assert response.status_code == 201
    assert response.json()["name"] == "Neon Room"

    duplicate = await client.post("/api/v1/booths/", json=body, headers=ADMIN_HEADERS)
    assert duplicate.status_code == 409

    listing = await client.get("/api/v1/booths/", params={"venue": "manor"})
    assert [b["name"] for b in listing.json()] == ["Neon Room"]


@pytest.mark.asyncio
async def test_availability_endpoint(client: AsyncClient, booth):
    response = await client.get(
        "/api/v1/availability/",
        params={"venue": "manor", "date": future_date().isoformat(), "party_size": 2, "session_hours": 2},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["session_hours"] == 2
    assert data["booths"][0]["booth"]["id"] == booth.id
    assert all(slot["status"] == "available" for slot in data["booths"][0]["slots"])


@pytest.mark.asyncio
async def test_hold_lifecycle(client: AsyncClient, booth):
    created = await client.post("/api/v1/holds/", json=_hold_body(booth.id))
    assert created.status_code == 201
    hold_id = created.json()["hold_id"]
    assert created.json()["status"] == "active"

    conflict = await client.post("/api/v1/holds/", json=_hold_body(booth.id, owner_id="client-b"))
    assert conflict.status_code == 409
    assert conflict.json()["error"] == "conflict"

    fetched = await client.get(f"/api/v1/holds/{hold_id}")
    assert fetched.status_code == 200

    for _ in range(2):
        released = await client.delete(f"/api/v1/holds/{hold_id}")
        assert released.status_code == 204

    gone = await client.get(f"/api/v1/holds/{hold_id}")
    assert gone.status_code == 404
    assert gone.json()["error"] == "hold_not_found"


@pytest.mark.asyncio
async def test_booth_double_book_race(client: AsyncClient, booth):
    """Two clients click the same slot at the same moment."""
    responses = await asyncio.gather(
        client.post("/api/v1/holds/", json=_hold_body(booth.id, owner_id="client-a")),
        client.post("/api/v1/holds/", json=_hold_body(booth.id, owner_id="client-b")),
    )
    assert sorted(r.status_code for r in responses) == [201, 409]


@pytest.mark.asyncio
async def test_invalid_hold_request(client: AsyncClient, booth):
    reversed_times = await client.post(
        "/api/v1/holds/", json=_hold_body(booth.id, start="21:00:00", end="19:00:00")
    )
    assert reversed_times.status_code == 422

    half_hour = await client.post("/api/v1/holds/", json=_hold_body(booth.id, start="19:30:00", end="20:30:00"))
    assert half_hour.status_code == 422
    assert half_hour.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_karaoke_booking_flow(client: AsyncClient, booth, payments):
    hold = await client.post("/api/v1/holds/", json=_hold_body(booth.id, "19:00:00", "21:00:00"))
    hold_id = hold.json()["hold_id"]

    declined = await client.post("/api/v1/bookings/karaoke", json={
        "hold_id": hold_id, "payment_token": DECLINED_NONCE, "customer": CUSTOMER, "party_size": 3,
    })
    assert declined.status_code == 402
    assert declined.json()["error"] == "payment_failed"

    booked = await client.post("/api/v1/bookings/karaoke", json={
        "hold_id": hold_id, "payment_token": OK_NONCE, "customer": CUSTOMER, "party_size": 3,
    })
    assert booked.status_code == 201
    result = booked.json()
    assert result["total_amount_cents"] == 10000

    availability = await client.get(
        "/api/v1/availability/",
        params={"venue": "manor", "date": future_date().isoformat(), "party_size": 2},
    )
    statuses = {s["start_time"]: s["status"] for s in availability.json()["booths"][0]["slots"]}
    assert statuses["19:00:00"] == "booked"
    assert statuses["20:00:00"] == "booked"

    roster = await client.get(f"/api/v1/guest-lists/{result['guest_list_token']}")
    assert roster.status_code == 200
    assert [g["name"] for g in roster.json()["own_guests"]] == ["Jane", "", ""]
    assert roster.json()["booking"]["booth_name"] == "Booth A"

    saved = await client.put(
        f"/api/v1/guest-lists/{result['guest_list_token']}",
        json={"names": ["Jane", "", "Sam"]},
    )
    assert saved.status_code == 200
    assert [g["name"] for g in saved.json()["own_guests"]] == ["Jane", "Sam"]


@pytest.mark.asyncio
async def test_customer_needs_contact_details(client: AsyncClient, booth):
    hold = await client.post("/api/v1/holds/", json=_hold_body(booth.id))
    response = await client.post("/api/v1/bookings/karaoke", json={
        "hold_id": hold.json()["hold_id"],
        "payment_token": OK_NONCE,
        "customer": {"name": "Jane"},
        "party_size": 2,
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_group_ticket_flow(client: AsyncClient):
    organiser = await client.post("/api/v1/bookings/tickets", json={
        "venue": "hippie",
        "booking_date": future_date(10).isoformat(),
        "ticket_quantity": 2,
        "payment_token": OK_NONCE,
        "customer": CUSTOMER,
        "date_of_birth": "1990-05-17",
    })
    assert organiser.status_code == 201
    share_token = organiser.json()["share_token"]

    group = await client.get(f"/api/v1/bookings/groups/{share_token}")
    assert group.status_code == 200
    assert group.json()["organiser_name"] == "Jane"
    assert group.json()["remaining_capacity"] is None

    joined = await client.post("/api/v1/bookings/tickets", json={
        "venue": "hippie",
        "booking_date": future_date(10).isoformat(),
        "ticket_quantity": 3,
        "payment_token": OK_NONCE,
        "customer": {"name": "Sam", "phone": "0400 000 000"},
        "date_of_birth": "1995-01-01",
        "group_token": share_token,
    })
    assert joined.status_code == 201

    roster = await client.get(f"/api/v1/guest-lists/{organiser.json()['guest_list_token']}")
    assert roster.json()["total_group_size"] == 5

    bad = await client.get("/api/v1/bookings/groups/1.99999999999.forged")
    assert bad.status_code == 404
    assert bad.json()["error"] == "invalid_link"


@pytest.mark.asyncio
async def test_occasion_flow(client: AsyncClient):
    created = await client.post("/api/v1/occasions/", json={
        "occasion_name": "Quiz Night",
        "venue": "manor",
        "booking_date": future_date(20).isoformat(),
        "capacity": 3,
        "ticket_price_cents": 2000,
        "organiser": {"name": "Venue Staff", "email": "staff@example.com"},
    }, headers=ADMIN_HEADERS)
    assert created.status_code == 201
    occasion = created.json()
    assert "/occasions/" in occasion["share_url"]

    purchase = {
        "ticket_quantity": 2,
        "payment_token": OK_NONCE,
        "customer": CUSTOMER,
        "date_of_birth": "1990-05-17",
    }
    bought = await client.post(f"/api/v1/occasions/{occasion['share_token']}/tickets", json=purchase)
    assert bought.status_code == 201
    assert bought.json()["total_amount_cents"] == 4000

    full = await client.post(f"/api/v1/occasions/{occasion['share_token']}/tickets", json=purchase)
    assert full.status_code == 409
    assert full.json()["error"] == "capacity_exceeded"

    details = await client.get(f"/api/v1/occasions/{occasion['share_token']}")
    assert details.json()["remaining_capacity"] == 1
    assert details.json()["total_guests"] == 2

    capacity = await client.get(f"/api/v1/bookings/{occasion['booking_id']}/capacity")
    assert capacity.json() == {"booking_id": occasion["booking_id"], "capacity": 3, "remaining_capacity": 1}

    unauthorised = await client.delete(f"/api/v1/bookings/{bought.json()['booking_id']}")
    assert unauthorised.status_code == 401

    cancelled = await client.delete(f"/api/v1/bookings/{bought.json()['booking_id']}", headers=ADMIN_HEADERS)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    again = await client.delete(f"/api/v1/bookings/{bought.json()['booking_id']}", headers=ADMIN_HEADERS)
    assert again.status_code == 400
    assert again.json()["error"] == "already_cancelled"

    capacity = await client.get(f"/api/v1/bookings/{occasion['booking_id']}/capacity")
    assert capacity.json()["remaining_capacity"] == 3


@pytest.mark.asyncio
async def test_occasion_requires_staff_token(client: AsyncClient):
    response = await client.post("/api/v1/occasions/", json={
        "occasion_name": "Quiz Night",
        "venue": "manor",
        "booking_date": future_date(20).isoformat(),
        "capacity": 3,
        "organiser": {"name": "Venue Staff", "email": "staff@example.com"},
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_booking_capacity(client: AsyncClient):
    response = await client.get("/api/v1/bookings/999/capacity")
    assert response.status_code == 404
    assert response.json()["error"] == "booking_not_found"
