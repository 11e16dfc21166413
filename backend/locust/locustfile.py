"""
Locust Load Test Suite

Events can only be created by a manager. Provision one first:
  python -m app.cli create-manager --email loadmgr@test.com --username loadmgr --password loadtest123
and export LOCUST_MANAGER_EMAIL / LOCUST_MANAGER_PASSWORD if you used others.

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput   # Test uncached availability reads
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
import string
from datetime import date, timedelta
from locust import HttpUser, task, between, tag, events

MANAGER_EMAIL = os.getenv("LOCUST_MANAGER_EMAIL", "loadmgr@test.com")
MANAGER_PASSWORD = os.getenv("LOCUST_MANAGER_PASSWORD", "loadtest123")

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None
CONCURRENCY_SECTION = "GA"
CONCURRENCY_CAPACITY = 10


def random_email():
    return f"load_{random.randint(10000, 99999)}@test.com"


def random_username():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def booking_body(event_id, section_name=CONCURRENCY_SECTION, quantity=1):
    return {
        "event_id": event_id,
        "section_name": section_name,
        "customer_name": "Load Tester",
        "customer_email": random_email(),
        "customer_phone": "555-0100",
        "quantity": quantity,
    }


def event_body(title, capacity):
    return {
        "title": title,
        "date": (date.today() + timedelta(days=random.randint(1, 90))).isoformat(),
        "time": "20:00",
        "location": "Load Test Arena",
        "description": "Generated by locust",
        "sections": [
            {"name": CONCURRENCY_SECTION, "price": "25.00", "total_capacity": capacity},
            {"name": "VIP", "price": "80.00", "total_capacity": max(1, capacity // 10)},
        ],
    }


def manager_headers(client):
    resp = client.post("/api/v1/auth/login", json={
        "email": MANAGER_EMAIL,
        "password": MANAGER_PASSWORD,
    })
    if resp.status_code != 200:
        return {}
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: first concurrency user creates a {CONCURRENCY_CAPACITY}-seat {CONCURRENCY_SECTION} section")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 guests -> 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT SUM(quantity) FROM bookings
      WHERE event_id = X AND status IN ('Reserved', 'Confirmed');
    Should be <= 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        if CONCURRENCY_EVENT_ID:
            return

        headers = manager_headers(self.client)
        if not headers:
            print("\n✗ Manager login failed, run the create-manager command first\n")
            return

        resp = self.client.post(
            "/api/v1/manager/events",
            json=event_body("Concurrency Test Event", CONCURRENCY_CAPACITY),
            headers=headers,
        )
        if resp.status_code == 201:
            globals()["CONCURRENCY_EVENT_ID"] = resp.json()["event"]["id"]
            print(f"\n✓ Created event {CONCURRENCY_EVENT_ID} with {CONCURRENCY_CAPACITY} seats\n")

    @tag("concurrency")
    @task
    def book_limited_seats(self):
        """All guests fight for the same 10 seats."""
        if not CONCURRENCY_EVENT_ID:
            return

        with self.client.post("/api/v1/bookings/",
            json=booking_body(CONCURRENCY_EVENT_ID),
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 400 and resp.json().get("code") == "INSUFFICIENT_CAPACITY":
                resp.success()  # Expected: sold out
            elif resp.status_code == 503:
                resp.success()  # Lock wait exceeded BOOKING_LOCK_TIMEOUT, client may retry
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - availability is aggregated on every read

    Run: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s

    Compare with BOOKING_LOCK_BACKEND=local and =redis:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events(self):
        page = random.randint(1, 5)
        resp = self.client.get(f"/api/v1/events/?page={page}&page_size=20",
            name="/api/v1/events/")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            event_id = random.choice(EVENT_IDS)
            self.client.get(f"/api/v1/events/{event_id}",
                name="/api/v1/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, *codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        """Book non-existent event."""
        with self.client.post("/api/v1/bookings/",
            json=booking_body(999999),
            catch_response=True
        ) as resp:
            self._expect(resp, 404)

    @tag("edge")
    @task
    def unknown_section(self):
        if not EVENT_IDS:
            return
        with self.client.post("/api/v1/bookings/",
            json=booking_body(random.choice(EVENT_IDS), section_name="Nowhere"),
            catch_response=True
        ) as resp:
            self._expect(resp, 404)

    @tag("edge")
    @task
    def negative_quantity(self):
        with self.client.post("/api/v1/bookings/",
            json=booking_body(1, quantity=-5),
            catch_response=True
        ) as resp:
            self._expect(resp, 400)

    @tag("edge")
    @task
    def zero_quantity(self):
        with self.client.post("/api/v1/bookings/",
            json=booking_body(1, quantity=0),
            catch_response=True
        ) as resp:
            self._expect(resp, 400)

    @tag("edge")
    @task
    def huge_quantity(self):
        with self.client.post("/api/v1/bookings/",
            json=booking_body(1, quantity=999999),
            catch_response=True
        ) as resp:
            self._expect(resp, 400)

    @tag("edge")
    @task
    def malformed_json(self):
        """Send garbage data."""
        with self.client.post("/api/v1/bookings/",
            data="not json at all",
            headers={"Content-Type": "application/json"},
            catch_response=True
        ) as resp:
            self._expect(resp, 400)

    @tag("edge")
    @task
    def unknown_booking_code(self):
        with self.client.get("/api/v1/bookings/EPDOESNOTEXIST",
            name="/api/v1/bookings/{code}",
            catch_response=True
        ) as resp:
            self._expect(resp, 404)

    @tag("edge")
    @task
    def manager_route_as_customer(self):
        with self.client.get("/api/v1/manager/dashboard", catch_response=True) as resp:
            self._expect(resp, 401)


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing
      - Some bookings and lookups
      - Rare event creation by a manager
    """
    wait_time = between(1, 3)

    def on_start(self):
        email = random_email()
        self.client.post("/api/v1/auth/register", json={
            "email": email,
            "username": random_username(),
            "password": "loadtest123"
        })

        resp = self.client.post("/api/v1/auth/login", json={
            "email": email,
            "password": "loadtest123"
        })

        if resp.status_code == 200:
            self.headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
        else:
            self.headers = {}
        self.codes = []

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events/?page=1&page_size=20")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @task(10)
    def book_seats(self):
        if not EVENT_IDS:
            return
        resp = self.client.post("/api/v1/bookings/",
            json=booking_body(random.choice(EVENT_IDS), quantity=random.randint(1, 3)),
            headers=self.headers)
        if resp.status_code == 201:
            self.codes.append(resp.json()["booking"]["booking_id"])

    @task(5)
    def my_bookings(self):
        if self.headers:
            self.client.get("/api/v1/bookings/my", headers=self.headers)

    @task(5)
    def lookup_booking(self):
        if self.codes:
            self.client.get(f"/api/v1/bookings/{random.choice(self.codes)}", name="/api/v1/bookings/{code}")

    @task(1)
    def create_event(self):
        """Rare: a manager publishes a new event."""
        headers = manager_headers(self.client)
        if not headers:
            return
        resp = self.client.post("/api/v1/manager/events",
            json=event_body(f"Event {random.randint(1, 10000)}", random.randint(10, 500)),
            headers=headers)
        if resp.status_code == 201:
            EVENT_IDS.append(resp.json()["event"]["id"])
