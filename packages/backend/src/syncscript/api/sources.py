"""Source API routes.

- GET  /vaults/{id}/sources      → any member (cached)
- POST /vaults/{id}/sources      → OWNER or CONTRIBUTOR; JSON or multipart
- GET  /sources/{id}/download    → any member of the source's vault

Link and note sources can be posted as JSON. File and image sources
must be multipart with the file in the ``file`` part; the other fields
travel as form fields alongside it.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from syncscript.auth.dependencies import CurrentUser, get_current_user
from syncscript.auth.rbac import require_vault_role
from syncscript.cache import Cache, get_cache
from syncscript.config import settings
from syncscript.db.engine import get_db
from syncscript.db.models import ALL_ROLES, EDITOR_ROLES
from syncscript.errors import ValidationFailed, failures_as
from syncscript.schemas.common import ok
from syncscript.schemas.vault import SourceCreate
from syncscript.services.source_service import SourceService, Upload

router = APIRouter()

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _svc(
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
) -> SourceService:
    return SourceService(db, cache)


async def read_upload(value: UploadFile, max_bytes: int) -> Upload:
    """Read a multipart file part, never more than ``max_bytes + 1`` bytes.

    The parser has already spooled the part to a temporary file; this
    keeps an oversized upload from being pulled into memory.
    """
    if value.size is not None and value.size > max_bytes:
        raise ValidationFailed("File too large")
    data = await value.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationFailed("File too large")
    return Upload(
        filename=value.filename or "upload",
        content_type=value.content_type,
        data=data,
    )


async def _read_source_body(request: Request) -> tuple[SourceCreate, Optional[Upload]]:
    """Parse either a JSON body or a (multipart) form into fields + upload."""
    content_type = request.headers.get("content-type", "")
    upload: Optional[Upload] = None

    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        raw: dict[str, Any] = {}
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if key == "file" and upload is None:
                    upload = await read_upload(value, settings.max_upload_bytes)
                continue
            raw.setdefault(key, value)
    else:
        body = await request.body()
        if not body:
            raw = {}
        else:
            try:
                raw = await request.json()
            except ValueError:
                raise ValidationFailed("Request body must be valid JSON")
        if not isinstance(raw, dict):
            raise ValidationFailed("Request body must be a JSON object")

    try:
        fields = SourceCreate.model_validate(raw)
    except ValidationError as e:
        raise ValidationFailed(f"Invalid source fields: {e.error_count()} error(s)")
    return fields, upload


@router.get("/vaults/{vault_id}/sources", dependencies=[Depends(require_vault_role(*ALL_ROLES))])
async def list_sources(vault_id: int, svc: SourceService = Depends(_svc)):
    """All sources in the vault, newest first."""
    with failures_as("Failed to fetch sources", vault_id=vault_id):
        sources, cached = await svc.list_sources(vault_id)
    if cached:
        return ok(sources, _cached=True)
    return ok(sources)


@router.post(
    "/vaults/{vault_id}/sources",
    status_code=201,
    dependencies=[Depends(require_vault_role(*EDITOR_ROLES))],
)
async def add_source(
    vault_id: int,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    svc: SourceService = Depends(_svc),
):
    """Add a link, note, file or image source to the vault."""
    fields, upload = await _read_source_body(request)
    with failures_as("Failed to add source", vault_id=vault_id):
        source = await svc.add_source(
            vault_id=vault_id,
            user_id=user.id,
            title=fields.title,
            source_type=fields.type,
            url=fields.url,
            content=fields.content,
            upload=upload,
        )
    return ok(source)


@router.get("/sources/{source_id}/download")
async def download_source(
    source_id: int,
    user: CurrentUser = Depends(get_current_user),
    svc: SourceService = Depends(_svc),
):
    """Send the file behind a file/image source, or redirect to where it lives."""
    with failures_as("Failed to download file", source_id=source_id):
        target = await svc.prepare_download(source_id, user.id)

    if target.redirect_url:
        return RedirectResponse(target.redirect_url, status_code=302)
    return FileResponse(target.path, filename=target.title, media_type=target.mime_type)
