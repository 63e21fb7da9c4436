"""Local upload storage for file and image sources.

Uploaded files land in ``settings.upload_dir`` as
``<millis>-<original name, whitespace → _>`` and are referenced from the
source row by their served path, ``/uploads/<filename>``. The same
directory is mounted as static files by the app.
"""

import re
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

import structlog

from syncscript.config import settings
from syncscript.errors import ServerError, ValidationFailed

logger = structlog.get_logger()

UPLOADS_URL_PREFIX = "/uploads"

ALLOWED_MIME_TYPES = frozenset({
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",  # docx
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",  # pptx
    "text/plain",
    "image/png",
    "image/jpeg",
    "image/jpg",
})


@dataclass
class StoredFile:
    """Where an upload ended up and what it was."""

    path: Path
    served_path: str
    mime_type: str
    size: int


def safe_filename(original: str, now_ms: Optional[int] = None) -> str:
    """Timestamp-prefixed name with whitespace collapsed and directories stripped."""
    base = PurePosixPath(original.replace("\\", "/")).name or "upload"
    base = re.sub(r"\s+", "_", base)
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{stamp}-{base}"


class UploadStorage:
    """Writes uploads to disk and resolves served paths back to files."""

    def __init__(
        self,
        root: Optional[Path] = None,
        max_bytes: Optional[int] = None,
    ):
        self.root = Path(root if root is not None else settings.upload_dir)
        self.max_bytes = max_bytes if max_bytes is not None else settings.max_upload_bytes

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def validate(self, mime_type: Optional[str], size: int) -> None:
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationFailed(f"Unsupported file type: {mime_type}")
        if size > self.max_bytes:
            raise ValidationFailed("File too large")

    def save(self, filename: str, data: bytes, mime_type: Optional[str]) -> StoredFile:
        """Validate and write an upload. Raises ValidationFailed or ServerError."""
        self.validate(mime_type, len(data))

        name = safe_filename(filename)
        path = self.ensure_root() / name
        try:
            path.write_bytes(data)
        except OSError as e:
            logger.error("storage.write_failed", path=str(path), error=str(e))
            raise ServerError("Failed to save file locally") from e

        logger.info("storage.saved", filename=name, size=len(data), mime_type=mime_type)
        return StoredFile(
            path=path,
            served_path=f"{UPLOADS_URL_PREFIX}/{name}",
            mime_type=mime_type,
            size=len(data),
        )

    def discard(self, stored: StoredFile) -> None:
        """Remove a saved upload whose source row was never committed."""
        try:
            stored.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("storage.discard_failed", path=str(stored.path), error=str(e))
            return
        logger.info("storage.discarded", filename=stored.path.name)

    def resolve(self, served_path: str) -> Optional[Path]:
        """Map ``/uploads/<name>`` back to a file inside the root.

        Returns None for paths that escape the upload directory or
        do not exist.
        """
        relative = served_path.lstrip("/")
        prefix = UPLOADS_URL_PREFIX.lstrip("/") + "/"
        if relative.startswith(prefix):
            relative = relative[len(prefix):]

        root = self.root.resolve()
        candidate = (root / relative).resolve()
        if root != candidate and root not in candidate.parents:
            logger.warning("storage.path_escape", served_path=served_path)
            return None
        if not candidate.is_file():
            return None
        return candidate
