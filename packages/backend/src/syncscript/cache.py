"""Redis read-through cache for the two hot listings.

Keys:
    vaults:user:{user_id}     — a user's vault list (5 min)
    vault:{vault_id}:sources  — a vault's sources (1 min)

Values are JSON. Every operation is best-effort: if Redis is not
connected or errors, reads miss and writes/deletes do nothing, so the
request falls through to the database.
"""

import json
from typing import Any, Optional

import redis.asyncio as aioredis
import structlog

from syncscript.realtime.pubsub import get_redis

logger = structlog.get_logger()


def vaults_key(user_id: int) -> str:
    return f"vaults:user:{user_id}"


def sources_key(vault_id: int) -> str:
    return f"vault:{vault_id}:sources"


class Cache:
    """JSON get/set/delete over the shared Redis pool."""

    def __init__(self, client: Optional[aioredis.Redis] = None):
        self._client = client

    def _redis(self) -> Optional[aioredis.Redis]:
        if self._client is not None:
            return self._client
        try:
            return get_redis()
        except RuntimeError:
            return None

    async def get_json(self, key: str) -> Optional[Any]:
        r = self._redis()
        if r is None:
            return None
        try:
            raw = await r.get(key)
        except Exception as e:
            logger.warning("cache.get_failed", key=key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("cache.corrupt_entry", key=key)
            return None

    async def set_json(self, key: str, value: Any, ttl: int) -> None:
        r = self._redis()
        if r is None:
            return
        try:
            await r.set(key, json.dumps(value), ex=ttl)
        except Exception as e:
            logger.warning("cache.set_failed", key=key, error=str(e))

    async def delete(self, *keys: str) -> None:
        r = self._redis()
        if r is None or not keys:
            return
        try:
            await r.delete(*keys)
        except Exception as e:
            logger.warning("cache.delete_failed", keys=list(keys), error=str(e))


def get_cache() -> Cache:
    """FastAPI dependency — a Cache bound to the process-wide pool."""
    return Cache()
