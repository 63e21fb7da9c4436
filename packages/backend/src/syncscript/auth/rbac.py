"""Vault role checks.

``require_vault_role(...)`` builds a dependency that loads the caller's
membership row for the ``vault_id`` path parameter and rejects the
request unless the row's role is one of the allowed roles. The
membership is returned to the handler and the role is also stored on
``request.state.vault_role``.
"""

import structlog
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from syncscript.auth.dependencies import CurrentUser, get_current_user
from syncscript.db.engine import get_db
from syncscript.db.models import VaultMember
from syncscript.errors import PermissionDenied, ServerError

logger = structlog.get_logger()


async def get_membership(
    db: AsyncSession, vault_id: int, user_id: int
) -> VaultMember | None:
    result = await db.execute(
        select(VaultMember).where(
            VaultMember.vault_id == vault_id,
            VaultMember.user_id == user_id,
        )
    )
    return result.scalars().first()


def check_role(membership: VaultMember | None, allowed_roles: tuple[str, ...]) -> str:
    """Return the member's role or raise PermissionDenied."""
    if membership is None:
        raise PermissionDenied("You do not have access to this vault")
    if membership.role not in allowed_roles:
        raise PermissionDenied(
            f"This action requires one of these roles: {', '.join(allowed_roles)}"
        )
    return membership.role


def require_vault_role(*allowed_roles: str):
    """Dependency factory: caller must hold one of ``allowed_roles`` in the vault."""

    async def dependency(
        vault_id: int,
        request: Request,
        user: CurrentUser = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> VaultMember:
        try:
            membership = await get_membership(db, vault_id, user.id)
        except SQLAlchemyError as e:
            logger.error("rbac.lookup_failed", vault_id=vault_id, user_id=user.id, error=str(e))
            raise ServerError("Failed to verify permissions") from e

        request.state.vault_role = check_role(membership, allowed_roles)
        return membership

    return dependency
