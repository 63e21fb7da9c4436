"""Rate limiting middleware — Redis fixed-window counter per client IP.

Each IP gets a counter key like ``syncscript:rl:{ip}:{bucket}:{window}``
where window = now // window_seconds. Every request counts against the
"api" bucket; register/login also count against a stricter "auth"
bucket to slow down credential stuffing.

Responses carry the draft-standard RateLimit-* headers. Rate limiting
is skipped when Redis is unavailable (e.g., in tests).
"""

import time
from typing import Callable, Optional

import redis.asyncio as aioredis
import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger()

AUTH_PATHS = ("/auth/login", "/auth/register")

GENERAL_MESSAGE = "Too many requests, please try again later."
AUTH_MESSAGE = "Too many login/register attempts. Please try again in 15 minutes."


def _default_redis() -> Optional[aioredis.Redis]:
    from syncscript.realtime.pubsub import get_redis

    try:
        return get_redis()
    except RuntimeError:
        return None


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis-based rate limiting per IP per fixed window."""

    def __init__(
        self,
        app,
        max_requests: int = 100,
        auth_max_requests: int = 10,
        window_seconds: int = 15 * 60,
        redis_getter: Callable[[], Optional[aioredis.Redis]] = _default_redis,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.auth_max_requests = auth_max_requests
        self.window_seconds = window_seconds
        self.redis_getter = redis_getter

    async def dispatch(self, request: Request, call_next) -> Response:
        redis = self.redis_getter()
        if redis is None:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_auth = request.url.path.startswith(AUTH_PATHS)
        buckets = [("api", self.max_requests)]
        if is_auth:
            buckets.append(("auth", self.auth_max_requests))

        now = time.time()
        window = int(now // self.window_seconds)
        reset_in = max(1, int((window + 1) * self.window_seconds - now))

        counted = []
        try:
            for bucket, limit in buckets:
                key = f"syncscript:rl:{client_ip}:{bucket}:{window}"
                count = await redis.incr(key)
                if count == 1:
                    await redis.expire(key, self.window_seconds * 2)
                counted.append((bucket, limit, count))
        except Exception as e:
            # Redis error: let the request through
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        # The bucket with the least headroom decides and is reported
        bucket, limit, count = min(counted, key=lambda c: c[1] - c[2])
        headers = {
            "RateLimit-Limit": str(limit),
            "RateLimit-Remaining": str(max(0, limit - count)),
            "RateLimit-Reset": str(reset_in),
        }

        if count > limit:
            logger.info("rate_limit.exceeded", client_ip=client_ip, bucket=bucket)
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": AUTH_MESSAGE if bucket == "auth" else GENERAL_MESSAGE,
                },
                headers={**headers, "Retry-After": str(reset_in)},
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
