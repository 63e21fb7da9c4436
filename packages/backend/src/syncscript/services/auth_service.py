"""Auth service — registration and login.

Routes pass raw (possibly missing) fields; the service owns the
validation rules and their messages so the CLI and API agree.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from syncscript.auth.jwt import create_access_token
from syncscript.auth.password import hash_password, verify_password
from syncscript.db.models import User
from syncscript.errors import (
    AuthenticationRequired,
    Conflict,
    NotFound,
    ValidationFailed,
)
from syncscript.schemas.auth import MIN_PASSWORD_LENGTH, UserRead

logger = structlog.get_logger()


def session_payload(user: User) -> dict:
    """``{"user": {...}, "token": "..."}`` as returned by register and login."""
    return {
        "user": UserRead.model_validate(user).to_wire(),
        "token": create_access_token(user.id, user.email, user.name),
    }


class AuthService:
    """Business logic for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def register(
        self,
        email: Optional[str],
        password: Optional[str],
        name: Optional[str],
    ) -> dict:
        if not email or not password or not name:
            raise ValidationFailed("Email, password, and name are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        if await self.find_by_email(email):
            raise Conflict("User with this email already exists")

        user = User(email=email, password=hash_password(password), name=name)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            await self.db.rollback()
            raise Conflict("User with this email already exists")

        logger.info("auth.registered", user_id=user.id)
        return session_payload(user)

    async def login(self, email: Optional[str], password: Optional[str]) -> dict:
        if not email or not password:
            raise ValidationFailed("Email and password are required")

        user = await self.find_by_email(email)
        if not user or not verify_password(password, user.password):
            logger.info("auth.login_failed")
            raise AuthenticationRequired("Invalid email or password")

        logger.info("auth.logged_in", user_id=user.id)
        return session_payload(user)

    async def get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user
