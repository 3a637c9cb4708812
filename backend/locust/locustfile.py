"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Many users, few seats
  locust -f locustfile.py --tags browse       # Cached event listings
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

The concurrency scenario needs an organizer to create its event; set
ORGANIZER_EMAIL / ORGANIZER_PASSWORD or let the first user register one.
"""

import os
import random
import uuid
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag

PASSWORD = "loadtest123"
CONCURRENCY_SEATS = int(os.environ.get("CONCURRENCY_SEATS", "10"))

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None

BOOKING_DETAILS = {
    "full_name": "Load Tester",
    "email": "load@test.com",
    "phone": "+1 555 010 0000",
    "emergency_contact": "Contact Person",
    "emergency_phone": "+1 555 010 0001",
}


def random_email():
    return f"load_{uuid.uuid4().hex[:10]}@test.com"


def register(client, role="user"):
    """Register a throwaway account and return auth headers, or {} on failure."""
    email = random_email()
    resp = client.post("/api/v1/auth/register", json={
        "name": "Load User",
        "email": email,
        "password": PASSWORD,
        "role": role,
    })
    if resp.status_code != 201:
        return {}
    return {"Authorization": f"Bearer {resp.json()['data']['access_token']}"}


def event_payload(title, seats, price=25.0):
    day = (datetime.now(timezone.utc) + timedelta(days=random.randint(30, 90))).date()
    return {
        "title": title,
        "description": "Load test event",
        "category": "concert",
        "location": "Load City",
        "venue": "Load Hall",
        "date": day.isoformat(),
        "time": "19:30",
        "price": price,
        "total_seats": seats,
    }


def booking_payload(event_id, seats=1):
    return {"event_id": event_id, "seats_booked": seats, "booking_details": BOOKING_DETAILS}


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many users -> CONCURRENCY_SEATS seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings WHERE event_id = X AND status = 'confirmed';
    Should equal CONCURRENCY_SEATS, and events.available_seats should be 0.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        global CONCURRENCY_EVENT_ID
        self.headers = register(self.client)
        if CONCURRENCY_EVENT_ID:
            return

        organizer = register(self.client, role="organizer")
        resp = self.client.post(
            "/api/v1/events",
            json=event_payload("Concurrency Test Event", CONCURRENCY_SEATS),
            headers=organizer,
        )
        if resp.status_code == 201 and not CONCURRENCY_EVENT_ID:
            CONCURRENCY_EVENT_ID = resp.json()["data"]["id"]

    @tag("concurrency")
    @task
    def book_limited_seats(self):
        """All users fight for the same seats; sold out is an expected answer."""
        if not CONCURRENCY_EVENT_ID or not self.headers:
            return

        with self.client.post(
            "/api/v1/bookings",
            json=booking_payload(CONCURRENCY_EVENT_ID),
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                # insufficient_capacity once sold out, conflict on a repeat booking
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class BrowsingUser(HttpUser):
    """
    TEST 2: Throughput - cached listings vs live event detail

    Run with and without Redis and compare P95 latency on the listing.
    """
    wait_time = between(0.1, 0.5)

    @tag("browse")
    @task(10)
    def list_events(self):
        page = random.randint(1, 5)
        resp = self.client.get(f"/api/v1/events?page={page}&limit=20", name="/api/v1/events [cached]")
        if resp.status_code == 200:
            for event in resp.json()["data"]["events"]:
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("browse")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @tag("browse")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - bad input must produce 4xx envelopes, never 5xx.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register(self.client)

    def _expect(self, resp, allowed):
        if resp.status_code in allowed:
            resp.success()
        else:
            resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        with self.client.post(
            "/api/v1/bookings", json=booking_payload(999999), headers=self.headers, catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def zero_seats(self):
        with self.client.post(
            "/api/v1/bookings", json=booking_payload(1, seats=0), headers=self.headers, catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def too_many_seats(self):
        with self.client.post(
            "/api/v1/bookings", json=booking_payload(1, seats=11), headers=self.headers, catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings", data="not json at all", headers=self.headers, catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/bookings", json=booking_payload(1), catch_response=True) as resp:
            self._expect(resp, [401])

    @tag("edge")
    @task
    def bad_revenue_period(self):
        with self.client.get(
            "/api/v1/dashboard/revenue?period=decade", headers=self.headers, catch_response=True
        ) as resp:
            # non-admins are rejected before the period is checked
            self._expect(resp, [400, 403])
