from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from fastapi import UploadFile

from app.core.errors import NotFound
from app.core.settings import settings
from app.services.storage.paths import resolve_reference
from app.services.storage.uploads import MAX_UPLOAD_BYTES, check_declared_size, save_upload

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain; charset=utf-8",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def guess_content_type(path: str | Path) -> str:
    return CONTENT_TYPES.get(Path(path).suffix.lower(), DEFAULT_CONTENT_TYPE)


@dataclass(frozen=True, slots=True)
class StoredFile:
    path: Path
    size_bytes: int
    content_type: str
    filename: str


class DocumentStorage:
    """Uploads land in the primary root; reads and deletes also search the legacy root."""

    def __init__(
        self,
        upload_dir: str | Path,
        legacy_upload_dir: str | Path,
        *,
        max_size_bytes: int = MAX_UPLOAD_BYTES,
        is_file: Callable[[Path], bool] = os.path.isfile,
    ) -> None:
        self.primary_root = Path(os.path.abspath(upload_dir))
        self.legacy_root = Path(os.path.abspath(legacy_upload_dir))
        self.max_size_bytes = max_size_bytes
        self._is_file = is_file

    @property
    def roots(self) -> tuple[Path, Path]:
        return (self.primary_root, self.legacy_root)

    def resolve(self, reference: str | None) -> Path:
        return resolve_reference(reference, self.roots, is_file=self._is_file)

    def describe(self, reference: str | None, *, filename: str | None = None) -> StoredFile:
        path = self.resolve(reference)
        try:
            size = path.stat().st_size
        except OSError as exc:
            # Removed between resolution and stat.
            raise NotFound("File missing") from exc
        return StoredFile(
            path=path,
            size_bytes=size,
            content_type=guess_content_type(path),
            filename=filename or path.name,
        )

    def validate(self, file: UploadFile) -> None:
        check_declared_size(file, self.max_size_bytes)

    async def save(self, file: UploadFile, *, now: datetime | None = None) -> str:
        return await save_upload(
            file, self.primary_root, max_size_bytes=self.max_size_bytes, now=now
        )

    def delete_quietly(self, reference: str | None) -> bool:
        """Unlink the file behind ``reference``; a missing or locked file is only logged."""
        try:
            path = self.resolve(reference)
            path.unlink()
        except NotFound:
            return False
        except OSError:
            logger.warning("Unable to delete stored document %s", reference, exc_info=True)
            return False
        return True

    def check_roots(self) -> dict[str, str]:
        if not self.primary_root.is_dir():
            return {"status": "error", "error": "upload directory missing"}
        if not os.access(self.primary_root, os.W_OK):
            return {"status": "error", "error": "upload directory not writable"}
        return {"status": "ok"}


def get_document_storage() -> DocumentStorage:
    return DocumentStorage(settings.upload_dir, settings.legacy_upload_dir)
