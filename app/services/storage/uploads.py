from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from uuid import uuid4

from fastapi import UploadFile

from app.core.errors import EmptyUpload, PayloadTooLarge, UploadFailed

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 500 * 1024 * 1024
CHUNK_SIZE = 1024 * 1024

ALLOWED_EXTENSIONS = frozenset(
    {".pdf", ".png", ".jpg", ".jpeg", ".gif", ".webp", ".tif", ".tiff", ".doc", ".docx", ".txt"}
)
FALLBACK_EXTENSION = ".bin"


def safe_extension(filename: str | None) -> str:
    """Only the extension of the client's file name is used, and only if allow-listed."""
    if not filename:
        return FALLBACK_EXTENSION
    ext = PurePosixPath(str(filename).replace("\\", "/")).suffix.lower()
    return ext if ext in ALLOWED_EXTENSIONS else FALLBACK_EXTENSION


def partition_subdir(now: datetime | None = None) -> PurePosixPath:
    now = now or datetime.now(timezone.utc)
    return PurePosixPath(f"{now.year:04d}") / f"{now.month:02d}"


def _too_large_message(max_size_bytes: int) -> str:
    return f"File exceeds maximum allowed size of {max_size_bytes // (1024 * 1024)} MB"


def check_declared_size(file: UploadFile, max_size_bytes: int = MAX_UPLOAD_BYTES) -> None:
    declared = getattr(file, "size", None)
    if declared is None:
        return
    if declared <= 0:
        raise EmptyUpload(f"File '{file.filename or 'upload'}' is empty")
    if declared > max_size_bytes:
        raise PayloadTooLarge(_too_large_message(max_size_bytes))


async def save_upload(
    file: UploadFile,
    base_dir: Path,
    *,
    max_size_bytes: int = MAX_UPLOAD_BYTES,
    now: datetime | None = None,
) -> str:
    """Stream ``file`` to ``base_dir/YYYY/MM/<uuid><ext>`` and return the relative reference.

    The ceiling is enforced on the bytes actually received as well as on the
    declared size; a partial file is removed before the error propagates.
    """
    check_declared_size(file, max_size_bytes)

    subdir = partition_subdir(now)
    dest_dir = Path(base_dir) / subdir
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Unable to create upload directory %s", dest_dir, exc_info=True)
        raise UploadFailed() from exc

    dest_name = f"{uuid4()}{safe_extension(file.filename)}"
    dest_path = dest_dir / dest_name
    bytes_written = 0

    try:
        with dest_path.open("xb") as handle:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                bytes_written += len(chunk)
                if bytes_written > max_size_bytes:
                    raise PayloadTooLarge(_too_large_message(max_size_bytes))
                handle.write(chunk)
        if bytes_written == 0:
            raise EmptyUpload(f"File '{file.filename or 'upload'}' is empty")
    except (PayloadTooLarge, EmptyUpload):
        dest_path.unlink(missing_ok=True)
        raise
    except OSError as exc:
        dest_path.unlink(missing_ok=True)
        logger.error("Unable to write upload %s", dest_path, exc_info=True)
        raise UploadFailed() from exc
    finally:
        await file.close()

    relative_path = (subdir / dest_name).as_posix()
    logger.info(
        "Stored upload",
        extra={"reference": relative_path, "size_bytes": bytes_written},
    )
    return relative_path
