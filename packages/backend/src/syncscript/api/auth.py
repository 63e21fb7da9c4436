"""Auth API — registration, login, current user.

- POST /auth/register → create account, returns user + token
- POST /auth/login → email/password → user + token
- GET /auth/me → the user behind the bearer token

A request with no body is treated as an empty object, so missing
fields get the same 400 messages either way.

Register and login share the stricter auth rate limit
(see middleware/rate_limit.py).
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from syncscript.auth.dependencies import CurrentUser, get_current_user
from syncscript.db.engine import get_db
from syncscript.errors import failures_as
from syncscript.schemas.auth import LoginRequest, RegisterRequest, UserRead
from syncscript.schemas.common import ok
from syncscript.services.auth_service import AuthService

router = APIRouter(prefix="/auth")


def _svc(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post("/register", status_code=201)
async def register(body: Optional[RegisterRequest] = None, svc: AuthService = Depends(_svc)):
    """Create a new user account and sign them in."""
    body = body or RegisterRequest()
    with failures_as("Failed to register user"):
        session = await svc.register(body.email, body.password, body.name)
    return ok(session)


@router.post("/login")
async def login(body: Optional[LoginRequest] = None, svc: AuthService = Depends(_svc)):
    """Login with email and password."""
    body = body or LoginRequest()
    with failures_as("Failed to login"):
        session = await svc.login(body.email, body.password)
    return ok(session)


@router.get("/me")
async def me(
    user: CurrentUser = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    """Get the current authenticated user's info."""
    record = await svc.get_user(user.id)
    return ok(UserRead.model_validate(record).to_wire())
