"""Socket.IO server — room membership and event delivery.

Clients connect with ``auth={"token": "<jwt>"}`` and then:
- ``join:user``   → personal room ``user_{id}`` (vault invites, own vault list)
- ``join:vault``  → room ``vault_{id}`` (live source additions)
- ``leave:vault`` → stop receiving a vault's events

Authenticated sockets may only join their own user room and vaults they
belong to. Anonymous sockets are accepted in development only, and join
whatever they ask for.
"""

from typing import Any, Optional

import socketio
import structlog
from socketio.exceptions import ConnectionRefusedError

from syncscript.auth.jwt import TokenError, verify_token
from syncscript.auth.rbac import get_membership
from syncscript.config import settings
from syncscript.db.engine import async_session_factory

logger = structlog.get_logger()


def user_room(user_id: int) -> str:
    return f"user_{user_id}"


def vault_room(vault_id: int) -> str:
    return f"vault_{vault_id}"


def _client_manager() -> Optional[socketio.AsyncManager]:
    if settings.realtime_redis_fanout:
        return socketio.AsyncRedisManager(settings.redis_url)
    return None


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.cors_origins,
    client_manager=_client_manager(),
)


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


async def connect(sid: str, environ: dict, auth: Optional[dict] = None):
    token = auth.get("token") if isinstance(auth, dict) else None

    if not token:
        if settings.environment != "development":
            raise ConnectionRefusedError("Authentication required")
        await sio.save_session(sid, {"user_id": None})
        logger.info("socket.connected", sid=sid, anonymous=True)
        return

    try:
        payload = verify_token(token)
    except TokenError:
        raise ConnectionRefusedError("Invalid or expired token")

    await sio.save_session(sid, {"user_id": int(payload["id"])})
    logger.info("socket.connected", sid=sid, user_id=payload["id"])


async def join_user(sid: str, user_id: Any):
    requested = _as_int(user_id)
    if requested is None:
        return
    session = await sio.get_session(sid)
    owner = session.get("user_id")
    if owner is not None and owner != requested:
        logger.warning("socket.join_user_denied", sid=sid, user_id=owner, requested=requested)
        await sio.emit("error", {"message": "Cannot join another user's room"}, to=sid)
        return
    await sio.enter_room(sid, user_room(requested))
    logger.info("socket.joined_user", sid=sid, user_id=requested)


async def join_vault(sid: str, vault_id: Any):
    requested = _as_int(vault_id)
    if requested is None:
        return
    session = await sio.get_session(sid)
    owner = session.get("user_id")
    if owner is not None:
        async with async_session_factory() as db:
            membership = await get_membership(db, requested, owner)
        if membership is None:
            logger.warning("socket.join_vault_denied", sid=sid, user_id=owner, vault_id=requested)
            await sio.emit("error", {"message": "You do not have access to this vault"}, to=sid)
            return
    await sio.enter_room(sid, vault_room(requested))
    logger.info("socket.joined_vault", sid=sid, vault_id=requested)


async def leave_vault(sid: str, vault_id: Any):
    requested = _as_int(vault_id)
    if requested is None:
        return
    await sio.leave_room(sid, vault_room(requested))
    logger.info("socket.left_vault", sid=sid, vault_id=requested)


async def disconnect(sid: str, *args):
    logger.info("socket.disconnected", sid=sid)


sio.on("connect", connect)
sio.on("join:user", join_user)
sio.on("join:vault", join_vault)
sio.on("leave:vault", leave_vault)
sio.on("disconnect", disconnect)


async def publish_event(room: str, event: str, data: dict[str, Any]) -> None:
    """Emit ``event`` to everyone in ``room``.

    Called after the database commit. A failed emit is logged and
    dropped: clients re-fetch on reconnect.
    """
    try:
        await sio.emit(event, data, room=room)
    except Exception as e:
        logger.warning("realtime.emit_failed", room=room, event=event, error=str(e))
