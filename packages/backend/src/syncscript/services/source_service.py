"""Source service — adding, listing and downloading a vault's sources.

Source types and what ``content`` holds:
    url, media   → the link (``content`` or legacy ``url`` field)
    note         → the note text
    file, image  → served path of the stored upload (/uploads/<name>)
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from syncscript.auth.rbac import get_membership
from syncscript.cache import Cache, sources_key
from syncscript.config import settings
from syncscript.db.models import (
    LINK_SOURCE_TYPES,
    SOURCE_NOTE,
    SOURCE_URL,
    UPLOAD_SOURCE_TYPES,
    Source,
    User,
)
from syncscript.errors import NotFound, PermissionDenied, ValidationFailed
from syncscript.events.store import AuditTrail
from syncscript.events.types import EVENT_SOURCE_ADDED, RESOURCE_SOURCE, SOURCE_ADDED
from syncscript.realtime.socket import publish_event, vault_room
from syncscript.schemas.vault import SourceRead
from syncscript.services.storage import StoredFile, UploadStorage

logger = structlog.get_logger()


@dataclass
class Upload:
    """An uploaded file as received from the multipart body."""

    filename: str
    content_type: Optional[str]
    data: bytes


@dataclass
class Download:
    """What the download route should send: a redirect or a local file."""

    title: str
    redirect_url: Optional[str] = None
    path: Optional[str] = None
    mime_type: Optional[str] = None


def format_source(source: Source, creator_name: str) -> dict:
    return SourceRead(
        id=source.id,
        vault_id=source.vault_id,
        type=source.type,
        title=source.title,
        # Legacy rows only have url
        content=source.content or source.url,
        mime_type=source.mime_type,
        size=source.size,
        added_by=creator_name,
        added_at=source.added_at,
        url=source.url,
    ).to_wire()


class SourceService:
    """Business logic for vault sources."""

    def __init__(
        self,
        db: AsyncSession,
        cache: Optional[Cache] = None,
        storage: Optional[UploadStorage] = None,
    ):
        self.db = db
        self.cache = cache or Cache()
        self.storage = storage or UploadStorage()
        self.audit = AuditTrail(db)

    # ─── List ───────────────────────────────────────────

    async def list_sources(self, vault_id: int) -> tuple[list[dict], bool]:
        """Sources newest first. Returns (data, from_cache)."""
        key = sources_key(vault_id)
        cached = await self.cache.get_json(key)
        if cached is not None:
            return cached, True

        result = await self.db.execute(
            select(Source)
            .where(Source.vault_id == vault_id)
            .options(selectinload(Source.creator))
            .order_by(Source.added_at.desc(), Source.id.desc())
        )
        sources = [format_source(s, s.creator.name) for s in result.scalars().all()]

        await self.cache.set_json(key, sources, settings.sources_cache_ttl)
        return sources, False

    # ─── Add ────────────────────────────────────────────

    async def add_source(
        self,
        vault_id: int,
        user_id: int,
        title: Optional[str],
        source_type: Optional[str] = None,
        url: Optional[str] = None,
        content: Optional[str] = None,
        upload: Optional[Upload] = None,
    ) -> dict:
        if not title or not title.strip():
            raise ValidationFailed("Source title is required")

        source_type = source_type or SOURCE_URL
        mime_type: Optional[str] = None
        size: Optional[int] = None
        stored: Optional[StoredFile] = None

        if source_type in UPLOAD_SOURCE_TYPES:
            if upload is None:
                raise ValidationFailed("File is required")
        elif source_type in LINK_SOURCE_TYPES:
            body = content or url
            if not body:
                raise ValidationFailed("URL is required")
        elif source_type == SOURCE_NOTE:
            body = content
            if not body:
                raise ValidationFailed("Note content is required")
        else:
            raise ValidationFailed("Invalid source type")

        creator = await self.db.get(User, user_id)
        if creator is None:
            raise NotFound("User not found")
        creator_name = creator.name

        if upload is not None and source_type in UPLOAD_SOURCE_TYPES:
            # Written before the row; removed again if the commit fails
            stored = self.storage.save(upload.filename, upload.data, upload.content_type)
            body = stored.served_path
            mime_type = stored.mime_type
            size = stored.size

        try:
            source = Source(
                vault_id=vault_id,
                type=source_type,
                title=title.strip(),
                content=body,
                mime_type=mime_type,
                size=size,
                url=body if source_type in LINK_SOURCE_TYPES else None,
                added_by=user_id,
            )
            self.db.add(source)
            await self.db.flush()

            await self.audit.append(
                vault_id=vault_id,
                user_id=user_id,
                action=SOURCE_ADDED,
                resource_type=RESOURCE_SOURCE,
                resource_id=source.id,
                metadata={"title": source.title, "type": source.type},
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            if stored is not None:
                self.storage.discard(stored)
            raise

        logger.info("source.added", vault_id=vault_id, source_id=source.id, type=source_type)
        await self.cache.delete(sources_key(vault_id))

        data = format_source(source, creator_name)
        await publish_event(vault_room(vault_id), EVENT_SOURCE_ADDED, data)
        return data

    # ─── Download ───────────────────────────────────────

    async def prepare_download(self, source_id: int, user_id: int) -> Download:
        """Check access and work out how to deliver a file source."""
        source = await self.db.get(Source, source_id)
        if source is None:
            raise NotFound("Source not found")

        if await get_membership(self.db, source.vault_id, user_id) is None:
            raise PermissionDenied("Access denied")

        if source.type not in UPLOAD_SOURCE_TYPES:
            raise ValidationFailed("Source is not a file")

        location = source.content or ""
        if location.startswith("http"):
            # Stored remotely; let the client fetch it directly
            return Download(title=source.title, redirect_url=location)

        path = self.storage.resolve(location)
        if path is None:
            raise NotFound("File not found on server")

        return Download(title=source.title, path=str(path), mime_type=source.mime_type)
