"""FastAPI auth dependencies.

Used as Depends() in route handlers to extract and validate the
current user from the ``Authorization: Bearer <token>`` header.

Missing credentials are a 401; credentials that fail verification
are a 403, matching what existing clients expect.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Header

from syncscript.auth.jwt import TokenError, verify_token
from syncscript.errors import AuthenticationRequired, PermissionDenied

logger = structlog.get_logger()


@dataclass(frozen=True)
class CurrentUser:
    """The authenticated user making the request, as carried in the token."""

    id: int
    email: str
    name: str

    @classmethod
    def from_payload(cls, payload: dict) -> "CurrentUser":
        return cls(
            id=int(payload["id"]),
            email=payload.get("email", ""),
            name=payload.get("name", ""),
        )


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Pull the token out of an ``Authorization: Bearer`` header value."""
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> CurrentUser:
    """Extract the current user (required)."""
    token = bearer_token(authorization)
    if not token:
        raise AuthenticationRequired("Authentication required")

    try:
        payload = verify_token(token)
    except TokenError as e:
        logger.info("auth.token_rejected", reason=str(e))
        raise PermissionDenied("Invalid or expired token")
    return CurrentUser.from_payload(payload)
