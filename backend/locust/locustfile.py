"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Hold races and the last ticket
  locust -f locustfile.py --tags throughput   # Availability reads, catalog cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Staff routes use ADMIN_TOKEN from the environment (same value as the API).
"""

import os
import random
import uuid
from datetime import date, timedelta
import requests
from locust import HttpUser, task, between, tag, events

ADMIN_HEADERS = {"Authorization": f"Bearer {os.environ.get('ADMIN_TOKEN', 'change-me-admin-token')}"}
OK_NONCE = "cnon:card-nonce-ok"
DOB = "1990-05-17"

# Shared state
RACE_BOOTH_ID = None
RACE_DATE = (date.today() + timedelta(days=random.randint(30, 300))).isoformat()
OCCASION_SHARE_TOKEN = None


def customer():
    name = "Load " + uuid.uuid4().hex[:6]
    return {"name": name, "email": f"{name.replace(' ', '_').lower()}@test.com"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Setup: one booth for the hold race, one 10-ticket occasion for the ticket race."""
    global RACE_BOOTH_ID, OCCASION_SHARE_TOKEN
    print("\n" + "="*60)
    print("SETUP: Creating race fixtures...")
    print("="*60)

    if environment.host is None:
        return

    resp = requests.post(f"{environment.host}/api/v1/booths/", json={
        "venue": "manor",
        "name": f"Race Booth {uuid.uuid4().hex[:6]}",
        "capacity": 8,
        "hourly_rate_cents": 5000,
    }, headers=ADMIN_HEADERS)
    if resp.status_code == 201:
        RACE_BOOTH_ID = resp.json()["id"]
        print(f"\n✓ Created booth {RACE_BOOTH_ID}\n")

    resp = requests.post(f"{environment.host}/api/v1/occasions/", json={
        "occasion_name": "Load Test Night",
        "venue": "hippie",
        "booking_date": RACE_DATE,
        "capacity": 10,
        "organiser": {"name": "Load Staff", "email": "staff@test.com"},
    }, headers=ADMIN_HEADERS)
    if resp.status_code == 201:
        OCCASION_SHARE_TOKEN = resp.json()["share_token"]
        print("\n✓ Created occasion with 10 tickets\n")


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many clients -> one slot, 10 tickets

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM holds WHERE booth_id = X AND status = 'active';
    Should be <= 1 per slot, and
      SELECT SUM(ticket_quantity) FROM bookings WHERE parent_booking_id = Y AND status != 'cancelled';
    Should be <= 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.owner_id = uuid.uuid4().hex[:16]

    @tag("concurrency")
    @task(3)
    def hold_same_slot(self):
        """All users fight for the same 19:00 slot."""
        if not RACE_BOOTH_ID:
            return

        with self.client.post("/api/v1/holds/",
            json={
                "booth_id": RACE_BOOTH_ID,
                "booking_date": RACE_DATE,
                "start_time": "19:00:00",
                "end_time": "20:00:00",
                "owner_id": self.owner_id,
            },
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
                # Close the modal again so the next user gets a turn
                self.client.delete(f"/api/v1/holds/{resp.json()['hold_id']}", name="/api/v1/holds/{id}")
            elif resp.status_code == 409:
                resp.success()  # Expected: someone else holds it
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency")
    @task(1)
    def buy_last_tickets(self):
        """All users fight for the same 10 occasion tickets."""
        if not OCCASION_SHARE_TOKEN:
            return

        with self.client.post(f"/api/v1/occasions/{OCCASION_SHARE_TOKEN}/tickets",
            json={
                "ticket_quantity": 1,
                "payment_token": OK_NONCE,
                "customer": customer(),
                "date_of_birth": DOB,
            },
            name="/api/v1/occasions/{token}/tickets",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - availability reads

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: Stop Redis, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def availability(self):
        """Slot grid for a random day; booth list comes from the cache."""
        day = (date.today() + timedelta(days=random.randint(1, 30))).isoformat()
        self.client.get(
            f"/api/v1/availability/?venue=manor&date={day}&party_size={random.randint(1, 6)}"
            f"&session_hours={random.randint(1, 2)}",
            name="/api/v1/availability/")

    @tag("throughput", "read")
    @task(3)
    def list_booths(self):
        self.client.get("/api/v1/booths/?venue=manor", name="/api/v1/booths/ [cached]")

    @tag("throughput")
    @task(1)
    def health_check(self):
        """Monitor system health."""
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    @tag("edge")
    @task
    def unknown_hold(self):
        """Finalize a hold that never existed."""
        with self.client.post("/api/v1/bookings/karaoke",
            json={"hold_id": str(uuid.uuid4()), "payment_token": OK_NONCE, "customer": customer(), "party_size": 2},
            catch_response=True
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")

    @tag("edge")
    @task
    def misaligned_slot(self):
        """Half-hour sessions do not exist."""
        with self.client.post("/api/v1/holds/",
            json={"booth_id": RACE_BOOTH_ID or 1, "booking_date": RACE_DATE,
                  "start_time": "19:30:00", "end_time": "20:30:00"},
            catch_response=True
        ) as resp:
            if resp.status_code in [404, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 404/422, got {resp.status_code}")

    @tag("edge")
    @task
    def huge_ticket_quantity(self):
        """Try to buy an absurd number of tickets."""
        with self.client.post("/api/v1/bookings/tickets",
            json={"venue": "hippie", "booking_date": RACE_DATE, "ticket_quantity": 999999,
                  "payment_token": OK_NONCE, "customer": customer(), "date_of_birth": DOB},
            catch_response=True
        ) as resp:
            if resp.status_code in [409, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 409/422, got {resp.status_code}")

    @tag("edge")
    @task
    def forged_share_link(self):
        with self.client.get("/api/v1/bookings/groups/1.9999999999.forged",
            name="/api/v1/bookings/groups/{token}",
            catch_response=True
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")

    @tag("edge")
    @task
    def malformed_json(self):
        """Send garbage data."""
        with self.client.post("/api/v1/holds/",
            data="not json at all",
            catch_response=True
        ) as resp:
            if resp.status_code in [400, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 400/422, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_staff_token(self):
        """Try creating a booth without the staff token."""
        with self.client.post("/api/v1/booths/",
            json={"venue": "manor", "name": "Nope", "capacity": 4, "hourly_rate_cents": 1000},
            catch_response=True
        ) as resp:
            if resp.status_code == 401:
                resp.success()
            else:
                resp.failure(f"Expected 401, got {resp.status_code}")
