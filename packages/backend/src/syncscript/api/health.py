"""Service banner and health check.

GET / describes the API; GET /health verifies the server is running
and its dependencies (Postgres, Redis) are reachable.
"""

from fastapi import APIRouter
from sqlalchemy import text

from syncscript import __version__
from syncscript.db.engine import engine

router = APIRouter()


@router.get("/")
async def banner():
    return {
        "message": f"SyncScript API v{__version__} is running",
        "version": __version__,
        "features": ["PostgreSQL", "JWT Auth", "RBAC", "WebSockets", "Audit Logs"],
        "endpoints": {
            "auth": "/auth/register, /auth/login",
            "vaults": "/vaults",
            "sources": "/vaults/:id/sources",
        },
    }


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    # Check Postgres
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["postgres"] = "ok"
    except Exception as e:
        checks["postgres"] = f"error: {e}"

    # Check Redis
    try:
        from syncscript.realtime.pubsub import get_redis

        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}
