"""Auth API tests — register, login, /auth/me and token handling."""

import pytest
from sqlalchemy import select

from syncscript.auth.jwt import create_access_token, verify_token
from syncscript.db.models import User

from conftest import auth_headers, register_user


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_user(client):
    r = await client.post(
        "/auth/register",
        json={"email": "ada@lab.org", "password": "secret123", "name": "Ada"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    user = body["data"]["user"]
    assert user["email"] == "ada@lab.org"
    assert user["name"] == "Ada"
    assert isinstance(user["id"], int)
    assert set(user) == {"id", "email", "name"}

    payload = verify_token(body["data"]["token"])
    assert payload["id"] == user["id"]
    assert payload["email"] == "ada@lab.org"


@pytest.mark.asyncio
async def test_register_stores_bcrypt_hash(client, db_session):
    await register_user(client, "hash@lab.org", "Hash")
    user = (await db_session.execute(select(User).where(User.email == "hash@lab.org"))).scalar_one()
    assert user.password.startswith("$2b$")
    assert user.password != "secret123"


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    body = {"email": "dup@lab.org", "password": "secret123", "name": "Dup"}
    r1 = await client.post("/auth/register", json=body)
    assert r1.status_code == 201

    r2 = await client.post("/auth/register", json=body)
    assert r2.status_code == 409
    assert r2.json() == {"success": False, "error": "User with this email already exists"}


@pytest.mark.asyncio
async def test_register_missing_fields(client):
    r = await client.post("/auth/register", json={"email": "x@lab.org", "password": "secret123"})
    assert r.status_code == 400
    assert r.json()["error"] == "Email, password, and name are required"


@pytest.mark.asyncio
async def test_register_without_body(client):
    r = await client.post("/auth/register")
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Email, password, and name are required"}


@pytest.mark.asyncio
async def test_register_short_password(client):
    r = await client.post(
        "/auth/register",
        json={"email": "short@lab.org", "password": "12345", "name": "Short"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Password must be at least 6 characters"


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client):
    registered = await register_user(client, "login@lab.org", "Login")
    r = await client.post("/auth/login", json={"email": "login@lab.org", "password": "secret123"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["user"] == registered["user"]
    assert verify_token(data["token"])["id"] == registered["user"]["id"]


@pytest.mark.asyncio
async def test_login_wrong_password(client):
    await register_user(client, "wrong@lab.org", "Wrong")
    r = await client.post("/auth/login", json={"email": "wrong@lab.org", "password": "nope-nope"})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_unknown_email(client):
    r = await client.post("/auth/login", json={"email": "ghost@lab.org", "password": "secret123"})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_missing_fields(client):
    r = await client.post("/auth/login", json={"email": "login@lab.org"})
    assert r.status_code == 400
    assert r.json()["error"] == "Email and password are required"


@pytest.mark.asyncio
async def test_login_without_body(client):
    r = await client.post("/auth/login")
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Email and password are required"}


# ═══════════════════════════════════════════════════════════
# Protected routes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_with_token(client, alice):
    r = await client.get("/auth/me", headers=auth_headers(alice["token"]))
    assert r.status_code == 200
    assert r.json()["data"] == alice["user"]


@pytest.mark.asyncio
async def test_missing_token_is_401(client):
    r = await client.get("/vaults")
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Authentication required"}


@pytest.mark.asyncio
async def test_malformed_header_is_401(client):
    r = await client.get("/vaults", headers={"Authorization": "Token abc"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token_is_403(client):
    r = await client.get("/vaults", headers=auth_headers("not-a-jwt"))
    assert r.status_code == 403
    assert r.json()["error"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_expired_token_is_403(client, alice):
    user = alice["user"]
    token = create_access_token(user["id"], user["email"], user["name"], expires_days=-1)
    r = await client.get("/vaults", headers=auth_headers(token))
    assert r.status_code == 403
    assert r.json()["error"] == "Invalid or expired token"
