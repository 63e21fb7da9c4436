"""Vault service — vault lifecycle and membership.

Every write follows the same shape:
1. Validate input (400s), look up the rows it depends on (404/409)
2. Stage the change plus its audit entry, commit once
3. Invalidate the cache keys the change makes stale
4. Emit the Socket.IO event for connected clients
"""

import json
from typing import Optional

import structlog
from sqlalchemy import case, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from syncscript.cache import Cache, vaults_key
from syncscript.config import settings
from syncscript.db.models import (
    INVITABLE_ROLES,
    ROLE_CONTRIBUTOR,
    ROLE_OWNER,
    User,
    Vault,
    VaultMember,
)
from syncscript.errors import Conflict, NotFound, ValidationFailed
from syncscript.events.store import AuditTrail
from syncscript.events.types import (
    EVENT_NOTIFICATION,
    EVENT_VAULT_CREATED,
    MEMBER_ADDED,
    NOTIFICATION_COLLABORATION,
    RESOURCE_USER,
    RESOURCE_VAULT,
    VAULT_CREATED,
)
from syncscript.realtime.socket import publish_event, user_room
from syncscript.schemas.vault import AuditEntryRead, MemberRead, VaultRead

logger = structlog.get_logger()


def _parse_metadata(raw):
    # Rows written by older releases stored metadata as JSON text
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError:
            return raw
    return raw


class VaultService:
    """Business logic for vaults, members and the audit view."""

    def __init__(self, db: AsyncSession, cache: Optional[Cache] = None):
        self.db = db
        self.cache = cache or Cache()
        self.audit = AuditTrail(db)

    # ─── Vaults ─────────────────────────────────────────

    async def list_vaults(self, user_id: int) -> tuple[list[dict], bool]:
        """Vaults the user belongs to, with their role. Returns (data, from_cache)."""
        key = vaults_key(user_id)
        cached = await self.cache.get_json(key)
        if cached is not None:
            return cached, True

        result = await self.db.execute(
            select(VaultMember)
            .where(VaultMember.user_id == user_id)
            .options(selectinload(VaultMember.vault))
            .join(Vault, Vault.id == VaultMember.vault_id)
            .order_by(Vault.created_at.desc(), Vault.id.desc())
        )
        vaults = [
            VaultRead(
                id=m.vault.id,
                name=m.vault.name,
                role=m.role,
                created_at=m.vault.created_at,
            ).to_wire()
            for m in result.scalars().all()
        ]

        await self.cache.set_json(key, vaults, settings.vaults_cache_ttl)
        return vaults, False

    async def create_vault(self, user_id: int, name: Optional[str]) -> dict:
        """Create a vault with the creator as OWNER, atomically with its audit row."""
        if not name or not name.strip():
            raise ValidationFailed("Vault name is required")

        try:
            vault = Vault(name=name.strip(), owner_id=user_id)
            self.db.add(vault)
            await self.db.flush()

            self.db.add(VaultMember(vault_id=vault.id, user_id=user_id, role=ROLE_OWNER))
            await self.audit.append(
                vault_id=vault.id,
                user_id=user_id,
                action=VAULT_CREATED,
                resource_type=RESOURCE_VAULT,
                resource_id=vault.id,
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("vault.created", vault_id=vault.id, user_id=user_id)
        await self.cache.delete(vaults_key(user_id))

        data = VaultRead(
            id=vault.id, name=vault.name, role=ROLE_OWNER, created_at=vault.created_at
        ).to_wire()
        await publish_event(user_room(user_id), EVENT_VAULT_CREATED, data)
        return data

    async def get_vault(self, vault_id: int) -> Vault | None:
        return await self.db.get(Vault, vault_id)

    # ─── Members ────────────────────────────────────────

    async def list_members(self, vault_id: int) -> list[dict]:
        role_order = case(
            (VaultMember.role == ROLE_OWNER, 0),
            (VaultMember.role == ROLE_CONTRIBUTOR, 1),
            else_=2,
        )
        result = await self.db.execute(
            select(VaultMember)
            .where(VaultMember.vault_id == vault_id)
            .options(selectinload(VaultMember.user))
            .order_by(role_order, VaultMember.joined_at, VaultMember.id)
        )
        return [
            MemberRead(
                user_id=m.user.id,
                name=m.user.name,
                email=m.user.email,
                role=m.role,
                joined_at=m.joined_at,
            ).to_wire()
            for m in result.scalars().all()
        ]

    async def add_member(
        self,
        vault_id: int,
        actor_id: int,
        email: Optional[str],
        role: Optional[str],
    ) -> str:
        """Invite an existing user into the vault. Returns the confirmation message."""
        if not email or not role:
            raise ValidationFailed("Email and role are required")
        if role not in INVITABLE_ROLES:
            raise ValidationFailed("Invalid role. Use CONTRIBUTOR or VIEWER")

        result = await self.db.execute(select(User).where(User.email == email))
        invitee = result.scalars().first()
        if not invitee:
            raise NotFound("User not found")

        existing = await self.db.execute(
            select(VaultMember.id).where(
                VaultMember.vault_id == vault_id,
                VaultMember.user_id == invitee.id,
            )
        )
        if existing.first() is not None:
            raise Conflict("User is already a member of this vault")

        vault = await self.get_vault(vault_id)
        if vault is None:
            raise NotFound("Vault not found")
        invitee_id = invitee.id
        vault_name = vault.name

        try:
            self.db.add(VaultMember(vault_id=vault_id, user_id=invitee_id, role=role))
            await self.audit.append(
                vault_id=vault_id,
                user_id=actor_id,
                action=MEMBER_ADDED,
                resource_type=RESOURCE_USER,
                resource_id=invitee_id,
                metadata={"email": email, "role": role},
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict("User is already a member of this vault")
        except Exception:
            await self.db.rollback()
            raise

        logger.info("vault.member_added", vault_id=vault_id, user_id=invitee_id, role=role)
        await self.cache.delete(vaults_key(invitee_id))

        await publish_event(
            user_room(invitee_id),
            EVENT_NOTIFICATION,
            {
                "type": NOTIFICATION_COLLABORATION,
                "message": f'You have been added to the vault "{vault_name}" as a {role}.',
                "vaultId": vault_id,
                "vaultName": vault_name,
            },
        )
        return f"User {email} added as {role}"

    # ─── Audit ──────────────────────────────────────────

    async def audit_entries(self, vault_id: int) -> list[dict]:
        entries = await self.audit.read_vault(vault_id)
        return [
            AuditEntryRead(
                id=e.id,
                action=e.action,
                user=e.user.name,
                resource_type=e.resource_type,
                resource_id=e.resource_id,
                metadata=_parse_metadata(e.meta),
                created_at=e.created_at,
            ).to_wire()
            for e in entries
        ]
