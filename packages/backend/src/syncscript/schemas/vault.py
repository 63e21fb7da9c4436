"""Pydantic schemas for vaults, sources, members and audit entries."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from syncscript.schemas.common import CamelModel


# ─── Vaults ─────────────────────────────────────────────

class VaultCreate(BaseModel):
    name: Optional[str] = None


class VaultRead(CamelModel):
    id: int
    name: str
    role: str
    created_at: datetime


# ─── Sources ────────────────────────────────────────────

class SourceCreate(BaseModel):
    """JSON body for link and note sources. Uploads come as multipart."""
    title: Optional[str] = None
    type: Optional[str] = None
    url: Optional[str] = None
    content: Optional[str] = None


class SourceRead(CamelModel):
    id: int
    vault_id: int
    type: str
    title: str
    content: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None
    added_by: str  # creator's display name
    added_at: datetime
    url: Optional[str] = None


# ─── Members ────────────────────────────────────────────

class MemberCreate(BaseModel):
    email: Optional[str] = None
    role: Optional[str] = None


class MemberRead(CamelModel):
    user_id: int
    name: str
    email: str
    role: str
    joined_at: datetime


# ─── Audit ──────────────────────────────────────────────

class AuditEntryRead(CamelModel):
    id: int
    action: str
    user: str  # actor's display name
    resource_type: Optional[str] = None
    resource_id: Optional[int] = None
    metadata: Optional[Any] = None
    created_at: datetime
