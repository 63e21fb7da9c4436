"""Audit trail — append-only log of changes inside a vault.

Entries are written in the same transaction as the change they
describe, so a vault, source or membership never exists without its
audit row. Reads are for vault owners only (enforced by the route).
"""

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from syncscript.db.models import AuditLog

AUDIT_PAGE_SIZE = 100


class AuditTrail:
    """Append-only audit log backed by the audit_logs table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(
        self,
        vault_id: int,
        user_id: int,
        action: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[int] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> AuditLog:
        """Stage an entry in the current transaction. The caller commits."""
        entry = AuditLog(
            vault_id=vault_id,
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            meta=metadata,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def read_vault(
        self, vault_id: int, limit: int = AUDIT_PAGE_SIZE
    ) -> list[AuditLog]:
        """Most recent entries for a vault, newest first."""
        result = await self.db.execute(
            select(AuditLog)
            .where(AuditLog.vault_id == vault_id)
            .options(selectinload(AuditLog.user))
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
