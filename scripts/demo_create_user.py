"""Demo: register a user, hit the duplicate guard, then drain the event.

Run with:
    python scripts/demo_create_user.py

Uses the in-memory store and channel, so no PostgreSQL or Redis needed.
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from user_service.main import app
from user_service.services.event_channel import event_channel
from user_service.worker import process_next

PAYLOAD = {
    "firstName": "Ana",
    "lastName": "Diaz",
    "email": "ana@x.com",
    "city": "Austin",
    "country": "US",
}


def main() -> None:
    client = TestClient(app)

    # ── Step 1: POST /users ─────────────────────────────────────────
    r = client.post("/users", json=PAYLOAD)
    user = r.json()
    print(f"1. POST /users               → {r.status_code}  id={user['id']}")

    # ── Step 2: same email again ────────────────────────────────────
    r = client.post("/users", json={**PAYLOAD, "email": "ANA@X.COM"})
    print(f"2. POST /users (duplicate)   → {r.status_code}  {r.json()['detail']['code']}")

    # ── Step 3: malformed email ─────────────────────────────────────
    r = client.post("/users", json={**PAYLOAD, "email": "not-an-email"})
    print(f"3. POST /users (bad email)   → {r.status_code}  {r.json()['detail']['code']}")

    # ── Step 4: lookups ─────────────────────────────────────────────
    r = client.get(f"/users/{user['id']}")
    print(f"4. GET  /users/{{id}}          → {r.status_code}  {r.json()['fullName']}")
    r = client.get("/users/email/ana@x.com")
    print(f"5. GET  /users/email/{{email}} → {r.status_code}")

    # ── Step 5: consume the UserCreated event ───────────────────────
    backlog = asyncio.run(event_channel.backlog())
    print(f"6. events waiting            → {backlog}")
    handled = asyncio.run(process_next(event_channel, timeout=0))
    print(f"7. worker processed one      → {handled}")


if __name__ == "__main__":
    main()
