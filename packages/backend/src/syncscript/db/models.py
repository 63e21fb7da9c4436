"""SQLAlchemy ORM models — single source of truth for the database schema.

Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Relationships, constraints, and indexes defined here.
Alembic migrations under db/migrations mirror these models.

Key concepts:
- Integer auto-increment primary keys (ids appear in URLs: /vaults/12)
- Generic JSON column for audit metadata (JSONB on PostgreSQL via variant)
- Timestamps set on the Python side so they are readable right after flush
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


JSONType = JSON().with_variant(JSONB(), "postgresql")


# ─── Roles ───────────────────────────────────────────────

ROLE_OWNER = "OWNER"
ROLE_CONTRIBUTOR = "CONTRIBUTOR"
ROLE_VIEWER = "VIEWER"

ALL_ROLES = (ROLE_OWNER, ROLE_CONTRIBUTOR, ROLE_VIEWER)
EDITOR_ROLES = (ROLE_OWNER, ROLE_CONTRIBUTOR)
INVITABLE_ROLES = (ROLE_CONTRIBUTOR, ROLE_VIEWER)

# ─── Source types ────────────────────────────────────────

SOURCE_URL = "url"
SOURCE_MEDIA = "media"
SOURCE_NOTE = "note"
SOURCE_FILE = "file"
SOURCE_IMAGE = "image"

LINK_SOURCE_TYPES = (SOURCE_URL, SOURCE_MEDIA)
UPLOAD_SOURCE_TYPES = (SOURCE_FILE, SOURCE_IMAGE)


class User(Base):
    """A registered researcher. Can belong to many vaults."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)  # bcrypt hash
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    memberships: Mapped[list["VaultMember"]] = relationship(back_populates="user")


class Vault(Base):
    """A named collection of research sources with its own member list.

    owner_id records who created it; effective rights always come from
    the vault_members row, where the creator holds OWNER.
    """

    __tablename__ = "vaults"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    members: Mapped[list["VaultMember"]] = relationship(
        back_populates="vault", cascade="all, delete-orphan"
    )
    sources: Mapped[list["Source"]] = relationship(
        back_populates="vault", cascade="all, delete-orphan"
    )


class VaultMember(Base):
    """Vault membership — links users to vaults with a role.

    One row per (vault, user). The role decides what the user may do:
    OWNER manages members and reads the audit log, CONTRIBUTOR adds
    sources, VIEWER only reads.
    """

    __tablename__ = "vault_members"
    __table_args__ = (
        UniqueConstraint("vault_id", "user_id", name="uq_vault_members"),
        Index("ix_vault_members_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vault_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vaults.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ROLE_VIEWER
    )  # OWNER, CONTRIBUTOR, VIEWER
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    vault: Mapped["Vault"] = relationship(back_populates="members")
    user: Mapped["User"] = relationship(back_populates="memberships")


class Source(Base):
    """A research artifact attached to a vault.

    content holds the URL for url/media, the text for notes, and the
    served path (/uploads/<file>) for uploads. url mirrors content for
    link sources so older clients that only read url keep working.
    """

    __tablename__ = "sources"
    __table_args__ = (
        Index("ix_sources_vault_added", "vault_id", "added_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vault_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vaults.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=SOURCE_URL)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    added_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    vault: Mapped["Vault"] = relationship(back_populates="sources")
    creator: Mapped["User"] = relationship()


class AuditLog(Base):
    """Append-only record of who changed what inside a vault."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_vault_created", "vault_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vault_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vaults.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    resource_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # "metadata" is reserved on declarative classes
    meta: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "metadata", JSONType, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    user: Mapped["User"] = relationship()
