from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path, PurePosixPath

import pytest
from fastapi import UploadFile

from app.core.errors import EmptyUpload, PayloadTooLarge
from app.services.storage.uploads import (
    FALLBACK_EXTENSION,
    check_declared_size,
    partition_subdir,
    safe_extension,
    save_upload,
)


def _upload(data: bytes, filename: str = "assignment.pdf", *, declared: int | None = -1) -> UploadFile:
    size = len(data) if declared == -1 else declared
    return UploadFile(file=BytesIO(data), filename=filename, size=size)


def _files_under(root: Path) -> list[Path]:
    return [p for p in root.rglob("*") if p.is_file()]


def test_partition_subdir_is_year_and_zero_padded_month():
    now = datetime(2024, 3, 9, tzinfo=timezone.utc)
    assert partition_subdir(now) == PurePosixPath("2024/03")


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("scan.PDF", ".pdf"),
        ("photo.jpeg", ".jpeg"),
        ("C:\\Users\\me\\form.docx", ".docx"),
        ("payload.exe", FALLBACK_EXTENSION),
        ("../../etc/passwd", FALLBACK_EXTENSION),
        ("", FALLBACK_EXTENSION),
        (None, FALLBACK_EXTENSION),
    ],
)
def test_safe_extension(filename, expected):
    assert safe_extension(filename) == expected


def test_declared_size_checks():
    with pytest.raises(EmptyUpload):
        check_declared_size(_upload(b"", declared=0))
    with pytest.raises(PayloadTooLarge):
        check_declared_size(_upload(b"abc", declared=11), max_size_bytes=10)
    # Unknown size is left to the streaming check.
    check_declared_size(_upload(b"abc", declared=None), max_size_bytes=10)


@pytest.mark.asyncio
async def test_save_upload_writes_partitioned_file(tmp_path):
    now = datetime(2024, 5, 17, tzinfo=timezone.utc)

    reference = await save_upload(_upload(b"%PDF-1.4 body", "Signed Form.PDF"), tmp_path, now=now)

    assert reference.startswith("2024/05/")
    assert reference.endswith(".pdf")
    assert "Signed" not in reference
    assert (tmp_path / reference).read_bytes() == b"%PDF-1.4 body"


@pytest.mark.asyncio
async def test_save_upload_names_are_unique(tmp_path):
    first = await save_upload(_upload(b"one"), tmp_path)
    second = await save_upload(_upload(b"two"), tmp_path)

    assert first != second
    assert len(_files_under(tmp_path)) == 2


@pytest.mark.asyncio
async def test_declared_oversize_writes_nothing(tmp_path):
    upload = _upload(b"x" * 32, declared=32)

    with pytest.raises(PayloadTooLarge):
        await save_upload(upload, tmp_path, max_size_bytes=16)

    assert _files_under(tmp_path) == []


@pytest.mark.asyncio
async def test_stream_over_ceiling_removes_partial_file(tmp_path):
    # Client under-reports the size; the streamed byte count still trips the ceiling.
    upload = _upload(b"x" * 64, declared=4)

    with pytest.raises(PayloadTooLarge):
        await save_upload(upload, tmp_path, max_size_bytes=16)

    assert _files_under(tmp_path) == []


@pytest.mark.asyncio
async def test_empty_stream_is_rejected_and_cleaned(tmp_path):
    upload = _upload(b"", declared=None)

    with pytest.raises(EmptyUpload):
        await save_upload(upload, tmp_path)

    assert _files_under(tmp_path) == []


@pytest.mark.asyncio
async def test_saved_reference_resolves_to_same_bytes(storage):
    body = b"%PDF-1.7 assignment of benefits"

    reference = await storage.save(_upload(body, "assignment.pdf"))

    resolved = storage.resolve(reference)
    assert resolved.read_bytes() == body
    assert storage.describe(reference).content_type == "application/pdf"
    assert storage.delete_quietly(reference) is True
    assert storage.delete_quietly(reference) is False
