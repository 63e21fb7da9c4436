"""JWT token creation and verification.

One long-lived access token per login (7 days by default). The payload
carries the user's id, email and name so clients can render the session
without another round trip.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from syncscript.config import settings


class TokenError(Exception):
    """Raised when token verification fails."""


def create_access_token(
    user_id: int,
    email: str,
    name: str,
    expires_days: Optional[int] = None,
) -> str:
    """Create a signed JWT access token for a user."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(days=expires_days or settings.access_token_expire_days)
    payload = {
        "sub": str(user_id),
        "id": user_id,
        "email": email,
        "name": name,
        "type": "access",
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if "id" not in payload:
        raise TokenError("Invalid token: missing user id")
    return payload
