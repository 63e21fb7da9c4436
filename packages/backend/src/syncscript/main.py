"""FastAPI application factory.

create_app() returns a configured FastAPI instance. Lifespan manages
startup/shutdown (logging, upload directory, Redis, database).

Two ASGI entry points:
- ``syncscript.main:app``       — the plain FastAPI app (tests, tooling)
- ``syncscript.main:asgi_app``  — FastAPI wrapped by the Socket.IO server;
                                   run this one under uvicorn
"""

from contextlib import asynccontextmanager

import socketio
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from syncscript import __version__
from syncscript.api import api_router
from syncscript.api.error_handlers import register_error_handlers
from syncscript.config import settings
from syncscript.observability import setup_logging
from syncscript.realtime.socket import sio

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    setup_logging(settings.log_level, settings.log_format)
    logger.info(
        "syncscript.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from syncscript.services.storage import UploadStorage
    UploadStorage().ensure_root()

    from syncscript.realtime.pubsub import close_redis, init_redis
    try:
        await init_redis()
        logger.info("syncscript.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Redis is optional: the app works without caching and rate limits
        logger.warning("syncscript.redis_unavailable", error=str(e))

    yield

    logger.info("syncscript.shutdown")
    await close_redis()

    from syncscript.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="SyncScript API",
        description="Collaborative research vaults with role-based access and live updates",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → RateLimit → CORS → handler

    from syncscript.middleware.rate_limit import RateLimitMiddleware
    from syncscript.middleware.request_id import RequestIdMiddleware
    from syncscript.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_max,
        auth_max_requests=settings.rate_limit_auth_max,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    register_error_handlers(app)

    app.include_router(api_router)

    # Uploaded files (development convenience; use a CDN in production)
    app.mount(
        "/uploads",
        StaticFiles(directory=str(settings.upload_dir), check_dir=False),
        name="uploads",
    )

    return app


# Default app instance
app = create_app()

# Socket.IO in front of FastAPI (used by uvicorn: syncscript.main:asgi_app)
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)
