"""
Shared helpers for SyncScript examples.

Handles the health check and account setup so each example can focus
on its own workflow.
"""

import os
import sys
import uuid

import httpx

BASE = os.environ.get("SYNCSCRIPT_API_URL", "http://localhost:3000")


def check_backend() -> None:
    """Verify the backend is reachable and its database answers."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  syncscript serve")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Postgres: {'✓' if health['postgres'] == 'ok' else '✗'}")
    print(f"  Redis:    {'✓' if health['redis'] == 'ok' else '✗ (cache and rate limits off)'}")

    if health["postgres"] != "ok":
        print("\nERROR: Postgres is not connected. Start it with: docker compose up -d")
        sys.exit(1)


def create_user(label: str) -> dict:
    """Register a fresh user and return ``{"user", "token", "client"}``.

    Uses a unique email per run so examples can be re-run.
    """
    run_id = uuid.uuid4().hex[:8]
    email = f"{label.lower()}-{run_id}@example.com"

    resp = httpx.post(
        f"{BASE}/auth/register",
        json={"email": email, "name": label, "password": "demo-password-123"},
        timeout=10,
    )
    if resp.status_code != 201:
        print(f"ERROR: Registration failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    session = resp.json()["data"]
    session["client"] = httpx.Client(
        base_url=BASE,
        timeout=10,
        headers={"Authorization": f"Bearer {session['token']}"},
    )
    print(f"  User:     {label} <{email}>")
    return session


def data(resp: httpx.Response, expected: int = 200):
    """Assert the status code and unwrap the response envelope."""
    assert resp.status_code == expected, f"{resp.status_code}: {resp.text}"
    body = resp.json()
    return body.get("data", body.get("message"))
