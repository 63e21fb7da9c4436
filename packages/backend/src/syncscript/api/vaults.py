"""Vault, member and audit API routes.

Routes translate HTTP to service calls; role checks are dependencies
built by require_vault_role(), so a handler only runs once the caller's
membership has been verified.

- GET  /vaults                  → caller's vaults (cached)
- POST /vaults                  → create, caller becomes OWNER
- GET  /vaults/{id}/members     → any member
- POST /vaults/{id}/members     → OWNER only
- GET  /vaults/{id}/audit       → OWNER only, last 100 entries
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from syncscript.auth.dependencies import CurrentUser, get_current_user
from syncscript.auth.rbac import require_vault_role
from syncscript.cache import Cache, get_cache
from syncscript.db.engine import get_db
from syncscript.db.models import ALL_ROLES, ROLE_OWNER
from syncscript.errors import failures_as
from syncscript.schemas.common import ok
from syncscript.schemas.vault import MemberCreate, VaultCreate
from syncscript.services.vault_service import VaultService

router = APIRouter()


def _svc(
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
) -> VaultService:
    return VaultService(db, cache)


# ─── Vaults ─────────────────────────────────────────────

@router.get("/vaults")
async def list_vaults(
    user: CurrentUser = Depends(get_current_user),
    svc: VaultService = Depends(_svc),
):
    """Vaults the caller belongs to, with their role in each."""
    with failures_as("Failed to fetch vaults", user_id=user.id):
        vaults, cached = await svc.list_vaults(user.id)
    if cached:
        return ok(vaults, _cached=True)
    return ok(vaults)


@router.post("/vaults", status_code=201)
async def create_vault(
    body: Optional[VaultCreate] = None,
    user: CurrentUser = Depends(get_current_user),
    svc: VaultService = Depends(_svc),
):
    """Create a vault. The creator is added as its OWNER."""
    body = body or VaultCreate()
    with failures_as("Failed to create vault", user_id=user.id):
        vault = await svc.create_vault(user.id, body.name)
    return ok(vault)


# ─── Members ────────────────────────────────────────────

@router.get("/vaults/{vault_id}/members", dependencies=[Depends(require_vault_role(*ALL_ROLES))])
async def list_members(vault_id: int, svc: VaultService = Depends(_svc)):
    with failures_as("Failed to fetch members", vault_id=vault_id):
        members = await svc.list_members(vault_id)
    return ok(members)


@router.post(
    "/vaults/{vault_id}/members",
    status_code=201,
    dependencies=[Depends(require_vault_role(ROLE_OWNER))],
)
async def add_member(
    vault_id: int,
    body: Optional[MemberCreate] = None,
    user: CurrentUser = Depends(get_current_user),
    svc: VaultService = Depends(_svc),
):
    """Add an existing user to the vault as CONTRIBUTOR or VIEWER."""
    body = body or MemberCreate()
    with failures_as("Failed to add member", vault_id=vault_id):
        message = await svc.add_member(vault_id, user.id, body.email, body.role)
    return ok(message=message)


# ─── Audit ──────────────────────────────────────────────

@router.get("/vaults/{vault_id}/audit", dependencies=[Depends(require_vault_role(ROLE_OWNER))])
async def audit_log(vault_id: int, svc: VaultService = Depends(_svc)):
    """The vault's most recent audit entries, newest first."""
    with failures_as("Failed to fetch audit logs", vault_id=vault_id):
        entries = await svc.audit_entries(vault_id)
    return ok(entries)
