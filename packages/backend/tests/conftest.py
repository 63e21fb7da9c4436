"""Test fixtures — an in-memory SQLite database per test.

Each test gets its own aiosqlite engine on a StaticPool, so every session
the app opens during the test shares one connection and one database.
Tables are built from the ORM metadata; nothing survives the test.

Redis is never connected in tests: the cache always misses and rate
limiting is skipped unless a test wires in a fake client.
"""

import os

os.environ.setdefault("SYNCSCRIPT_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SYNCSCRIPT_ENVIRONMENT", "test")
os.environ.setdefault("SYNCSCRIPT_JWT_SECRET", "test-secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from syncscript.cache import Cache, get_cache
from syncscript.config import settings
from syncscript.db.engine import get_db
from syncscript.db.models import Base
from syncscript.main import app


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Uploads go to a per-test temp directory."""
    root = tmp_path / "uploads"
    monkeypatch.setattr(settings, "upload_dir", root)
    return root


@pytest_asyncio.fixture()
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """Direct session for arranging and inspecting rows."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client with get_db pointed at the test database.

    Auth is not overridden: tests register real users and send real
    bearer tokens, so the JWT and role checks run as in production.
    """
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ─── Helpers ─────────────────────────────────────────────

async def register_user(client, email: str, name: str, password: str = "secret123") -> dict:
    """Register through the API and return ``{"user": ..., "token": ...}``."""
    r = await client.post(
        "/auth/register",
        json={"email": email, "password": password, "name": name},
    )
    assert r.status_code == 201, r.text
    return r.json()["data"]


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def create_vault(client, token: str, name: str = "Thesis") -> dict:
    r = await client.post("/vaults", json={"name": name}, headers=auth_headers(token))
    assert r.status_code == 201, r.text
    return r.json()["data"]


async def add_member(client, token: str, vault_id: int, email: str, role: str) -> None:
    r = await client.post(
        f"/vaults/{vault_id}/members",
        json={"email": email, "role": role},
        headers=auth_headers(token),
    )
    assert r.status_code == 201, r.text


@pytest_asyncio.fixture()
async def alice(client):
    """Registered user who owns vaults in most tests."""
    return await register_user(client, "alice@lab.org", "Alice")


@pytest_asyncio.fixture()
async def bob(client):
    return await register_user(client, "bob@lab.org", "Bob")


@pytest_asyncio.fixture()
async def carol(client):
    return await register_user(client, "carol@lab.org", "Carol")


@pytest_asyncio.fixture()
async def shared_vault(client, alice, bob, carol):
    """Alice's vault with Bob as CONTRIBUTOR and Carol as VIEWER."""
    vault = await create_vault(client, alice["token"], "Shared Research")
    await add_member(client, alice["token"], vault["id"], "bob@lab.org", "CONTRIBUTOR")
    await add_member(client, alice["token"], vault["id"], "carol@lab.org", "VIEWER")
    return vault


# ─── Cache ───────────────────────────────────────────────

class FakeRedis:
    """Just enough of redis.asyncio.Redis for the cache."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.ttls[key] = ex

    async def delete(self, *keys):
        for k in keys:
            self.store.pop(k, None)


@pytest.fixture()
def fake_redis():
    """Routes the API's cache through an in-memory FakeRedis."""
    redis = FakeRedis()
    app.dependency_overrides[get_cache] = lambda: Cache(client=redis)
    yield redis
    app.dependency_overrides.pop(get_cache, None)
