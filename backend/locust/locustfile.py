"""
Locust Load Test Suite

Start the API with seeded events and relaxed rate limits:
  SEED_DEFAULT_EVENTS=true DB_AUTO_CREATE=true RATE_LIMIT_RELAXED=true uvicorn app.main:app

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Each user sends its own X-Forwarded-For address so per-IP limits apply per user.
"""

import os
import random
from locust import HttpUser, task, between, tag, events

# Shared state
EVENT_IDS = []
TICKETS = []
CONCURRENCY_EVENT_ID = os.getenv("LOAD_EVENT_ID", "lagos-2026-01-03")


def random_email():
    return f"load_{random.randint(10000, 99999)}_{random.randint(0, 999)}@test.com"


def random_ip():
    return ".".join(str(random.randint(1, 254)) for _ in range(4))


def registration_body(event_id):
    return {
        "event_id": event_id,
        "name": "Load Tester",
        "gender": random.choice(["female", "male", "non-binary", "prefer-not-to-say"]),
        "profession": "tester",
        "phone_number": f"080{random.randint(10000000, 99999999)}",
        "email": random_email(),
        "location_preference": random.choice(["lagos", "ibadan"]),
        "needs_directions": False,
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: concurrency target event = {CONCURRENCY_EVENT_ID}")
    print("=" * 60)


class BaseUser(HttpUser):
    abstract = True

    def on_start(self):
        self.headers = {"X-Forwarded-For": random_ip()}


class ConcurrencyUser(BaseUser):
    """
    TEST 1: Concurrency - 100 users -> 20 places

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM registrations WHERE event_id = X AND status = 'confirmed';
    Should be <= capacity
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task
    def register_limited_places(self):
        """All users fight for the same places."""
        with self.client.post("/api/v1/events/register",
            json=registration_body(CONCURRENCY_EVENT_ID),
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                TICKETS.append(resp.json()["registration"]["ticket_number"])
                resp.success()
            elif resp.status_code == 400 and resp.json().get("code") == "EVENT_AT_CAPACITY":
                resp.success()  # Expected: full
            elif resp.status_code == 429:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(BaseUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: CACHE_BACKEND=redis, locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. In-memory: CACHE_BACKEND=memory, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        """Hammer the cached endpoint."""
        resp = self.client.get("/api/v1/events", name="/api/v1/events [cached]")
        if resp.status_code == 200:
            for event in resp.json():
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}",
                name="/api/v1/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(BaseUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        with self.client.post("/api/v1/events/register",
            json=registration_body("no-such-event"),
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [404, 429])

    @tag("edge")
    @task
    def invalid_gender(self):
        body = registration_body(CONCURRENCY_EVENT_ID)
        body["gender"] = "robot"
        with self.client.post("/api/v1/events/register", json=body,
            headers=self.headers, catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def oversized_body(self):
        body = registration_body(CONCURRENCY_EVENT_ID)
        body["notes"] = "x" * 20_000
        with self.client.post("/api/v1/events/register", json=body,
            headers=self.headers, catch_response=True
        ) as resp:
            self._expect(resp, [413])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/events/register",
            data="not json at all",
            headers={**self.headers, "Content-Type": "application/json"},
            catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def cancel_unknown_ticket(self):
        with self.client.post("/api/v1/events/cancel",
            json={"ticket_number": "SWAY-0-00000000-0000"},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [404, 429])


class RealisticUser(BaseUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing
      - Some registrations
      - Rare cancellations
    """
    wait_time = between(1, 3)

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events")
        if resp.status_code == 200:
            for event in resp.json():
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}",
                name="/api/v1/events/{id}")

    @task(10)
    def register(self):
        if EVENT_IDS:
            resp = self.client.post("/api/v1/events/register",
                json=registration_body(random.choice(EVENT_IDS)),
                headers=self.headers)
            if resp.status_code == 201:
                TICKETS.append(resp.json()["registration"]["ticket_number"])

    @task(3)
    def cancel(self):
        if TICKETS:
            ticket = TICKETS.pop(random.randrange(len(TICKETS)))
            self.client.post("/api/v1/events/cancel",
                json={"ticket_number": ticket},
                headers=self.headers)
