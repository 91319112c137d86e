"""
Locust Load Test Suite

Needs a staff account (STAFF_EMAIL / STAFF_PASSWORD) on the target.

Run scenarios:
  locust -f locustfile.py --tags scan        # Duplicate badge scans
  locust -f locustfile.py --tags seating     # Overlapping seat batches
  locust -f locustfile.py --tags throughput  # Dashboard cache
  locust -f locustfile.py --tags edge        # Bad input
"""

import os
import random
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

STAFF_EMAIL = os.environ.get("STAFF_EMAIL", "staff@example.com")
STAFF_PASSWORD = os.environ.get("STAFF_PASSWORD", "securepassword123")
PASSWORD = "loadtest123"

# Shared state
STATE = {
    "staff_headers": None,
    "event_id": None,
    "table_id": None,
    "country_id": None,
    "participant_type_id": None,
    "badges": [],
    "participant_ids": [],
}


def random_email():
    return f"load_{random.randint(100000, 999999)}@test.com"


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: staff login, event with a 10-seat table")
    print("=" * 60)


def ensure_setup(client):
    """First user through sets up the shared event, table and reference data."""
    if STATE["staff_headers"]:
        return

    resp = client.post("/api/v1/auth/login", json={"email": STAFF_EMAIL, "password": STAFF_PASSWORD})
    if resp.status_code != 200:
        print(f"\n✗ Staff login failed: {resp.status_code}\n")
        return
    headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

    client.post("/api/v1/reference/countries", json={"code": "LT", "name": "Load Test"}, headers=headers)
    client.post("/api/v1/reference/participant-types", json={"name": "Load", "slug": "load"}, headers=headers)
    countries = client.get("/api/v1/reference/countries").json()
    types = client.get("/api/v1/reference/participant-types").json()

    now = datetime.now(timezone.utc)
    resp = client.post(
        "/api/v1/events/",
        json={
            "title": f"Load Test Plenary {random.randint(1, 10000)}",
            "location": "Main Hall",
            "starts_at": (now - timedelta(minutes=5)).isoformat(),
            "ends_at": (now + timedelta(hours=4)).isoformat(),
        },
        headers=headers,
    )
    event_id = resp.json()["id"]
    resp = client.post(
        "/api/v1/seating/tables",
        json={"event_id": event_id, "table_number": "LOAD-1", "capacity": 10},
        headers=headers,
    )

    STATE.update(
        staff_headers=headers,
        event_id=event_id,
        table_id=resp.json()["id"],
        country_id=countries[0]["id"],
        participant_type_id=types[0]["id"],
    )
    print(f"\n✓ Event {event_id} with table {STATE['table_id']} (10 seats)\n")


def register_participant(client):
    resp = client.post(
        "/api/v1/auth/register",
        json={
            "name": "Load Participant",
            "email": random_email(),
            "contact_number": "09170000000",
            "organization": "Load Org",
            "country_id": STATE["country_id"],
            "participant_type_id": STATE["participant_type_id"],
            "password": PASSWORD,
            "consent_contact_sharing": True,
            "consent_photo_video": True,
            "event_ids": [STATE["event_id"]],
        },
        name="/api/v1/auth/register",
    )
    if resp.status_code == 201:
        data = resp.json()
        STATE["badges"].append(data["credential_payload"])
        STATE["participant_ids"].append(data["id"])


class DuplicateScanUser(HttpUser):
    """
    TEST 1: Many scanners, few badges

    Run: locust -f locustfile.py --tags scan -u 50 -r 25 --run-time 30s

    After test, verify:
      SELECT participant_id, COUNT(*) FROM attendance_records
      WHERE event_id = X GROUP BY participant_id HAVING COUNT(*) > 1;
    Should return no rows
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        ensure_setup(self.client)
        if STATE["staff_headers"] and len(STATE["badges"]) < 5:
            register_participant(self.client)

    @tag("scan")
    @task
    def scan_same_badges(self):
        if not STATE["badges"]:
            return
        with self.client.post(
            "/api/v1/scanner/scan",
            json={"code": random.choice(STATE["badges"][:5]), "event_id": STATE["event_id"]},
            headers=STATE["staff_headers"],
            catch_response=True,
        ) as resp:
            if resp.status_code == 200 and resp.json()["ok"]:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code} {resp.text[:100]}")


class SeatContentionUser(HttpUser):
    """
    TEST 2: Overlapping batches for one 10-seat table

    Run: locust -f locustfile.py --tags seating -u 40 -r 20 --run-time 30s

    After test, verify:
      SELECT occupied_seats, (SELECT COUNT(*) FROM seat_assignments WHERE table_id = X)
      FROM seating_tables WHERE id = X;
    Both should be equal and ≤ 10
    """
    wait_time = between(0, 0.2)

    def on_start(self):
        ensure_setup(self.client)
        if STATE["staff_headers"]:
            register_participant(self.client)

    @tag("seating")
    @task
    def assign_batch(self):
        if len(STATE["participant_ids"]) < 3:
            return
        batch = random.sample(STATE["participant_ids"], 3)
        with self.client.post(
            "/api/v1/seating/assignments",
            json={"table_id": STATE["table_id"], "participant_ids": batch},
            headers=STATE["staff_headers"],
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 409):
                resp.success()  # 409: table full or retries exhausted
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 3: Dashboard cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        ensure_setup(self.client)

    @tag("throughput", "read")
    @task(10)
    def dashboard(self):
        if STATE["staff_headers"]:
            self.client.get("/api/v1/dashboard/", headers=STATE["staff_headers"], name="/api/v1/dashboard/ [cached]")

    @tag("throughput", "read")
    @task(3)
    def list_events(self):
        self.client.get("/api/v1/events/")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 4: Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        ensure_setup(self.client)

    @tag("edge")
    @task
    def unknown_badge(self):
        """Garbage codes are soft rejections, never errors."""
        with self.client.post(
            "/api/v1/scanner/scan",
            json={"code": "not-a-badge", "event_id": STATE["event_id"] or 1},
            headers=STATE["staff_headers"] or {},
            catch_response=True,
        ) as resp:
            if resp.status_code == 200 and resp.json()["ok"] is False:
                resp.success()
            else:
                resp.failure(f"Expected ok=false, got {resp.status_code}")

    @tag("edge")
    @task
    def oversized_batch(self):
        with self.client.post(
            "/api/v1/seating/assignments",
            json={"table_id": STATE["table_id"] or 1, "participant_ids": list(range(1, 50))},
            headers=STATE["staff_headers"] or {},
            catch_response=True,
        ) as resp:
            if resp.status_code in (409, 422):
                resp.success()
            else:
                resp.failure(f"Expected 409/422, got {resp.status_code}")

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/scanner/scan",
            data="not json at all",
            headers=STATE["staff_headers"] or {},
            catch_response=True,
        ) as resp:
            if resp.status_code in (400, 422):
                resp.success()
            else:
                resp.failure(f"Expected 400/422, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post(
            "/api/v1/scanner/scan",
            json={"code": "x", "event_id": 1},
            catch_response=True,
        ) as resp:
            if resp.status_code == 401:
                resp.success()
            else:
                resp.failure(f"Expected 401, got {resp.status_code}")
