"""Assignment and "other" document collections on a funding request.

Assignment documents have two representations on the row: the ordered
``assignment_upload_paths`` list and the legacy single
``assignment_upload_path``. The list is authoritative; the legacy field is
rewritten from it on every mutation (first element, or empty).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from app.core.errors import InvalidIndex, InvalidKind, TooManyAttachments

logger = logging.getLogger(__name__)

MAX_ASSIGNMENT_DOCUMENTS = 10
MAX_OTHER_DOCUMENTS = 50


class AttachmentKind(str, Enum):
    ASSIGNMENT = "assignment"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "AttachmentKind":
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidKind() from exc


def parse_index(value: Any) -> int:
    """Accept a non-negative integer or its decimal string form."""
    if isinstance(value, bool):
        raise InvalidIndex("Invalid index")
    if isinstance(value, int):
        index = value
    else:
        text = str(value if value is not None else "").strip()
        if not (text.isascii() and text.isdecimal()):
            raise InvalidIndex("Invalid index")
        index = int(text)
    if index < 0:
        raise InvalidIndex("Invalid index")
    return index


class AttachmentSet:
    """Ordered references of one kind, with the legacy mirror derived on write."""

    def __init__(self, kind: AttachmentKind, paths: Iterable[str] | None, legacy: str | None = None):
        self.kind = kind
        self._paths: list[str] = [str(p) for p in (paths or []) if p is not None]
        self._legacy = (legacy or "").strip() if kind is AttachmentKind.ASSIGNMENT else ""

    @classmethod
    def for_record(cls, record: Any, kind: AttachmentKind) -> "AttachmentSet":
        if kind is AttachmentKind.ASSIGNMENT:
            return cls(
                kind,
                getattr(record, "assignment_upload_paths", None),
                getattr(record, "assignment_upload_path", None),
            )
        return cls(kind, getattr(record, "other_upload_paths", None))

    @property
    def limit(self) -> int:
        if self.kind is AttachmentKind.ASSIGNMENT:
            return MAX_ASSIGNMENT_DOCUMENTS
        return MAX_OTHER_DOCUMENTS

    @property
    def documents(self) -> list[str]:
        if self._paths:
            return list(self._paths)
        if self._legacy:
            # Pre-list rows kept their only assignment in the single field.
            return [self._legacy]
        return []

    @property
    def legacy_mirror(self) -> str:
        if self.kind is not AttachmentKind.ASSIGNMENT:
            return ""
        documents = self.documents
        return documents[0] if documents else ""

    def __len__(self) -> int:
        return len(self.documents)

    def ensure_capacity(self, additional: int) -> None:
        if len(self) + additional > self.limit:
            raise TooManyAttachments(
                f"Too many {self.kind.value} documents (max {self.limit})",
                details={"kind": self.kind.value, "limit": self.limit, "current": len(self)},
            )

    def append(self, references: Sequence[str]) -> None:
        references = [ref for ref in references if ref]
        self.ensure_capacity(len(references))
        if not references:
            return
        self._paths = self.documents + list(references)

    def remove(self, index: Any, *, delete_file: Callable[[str], Any] | None = None) -> str:
        """Splice out ``index``; ``delete_file`` is tried first and may fail freely."""
        position = parse_index(index)
        documents = self.documents
        if position >= len(documents):
            raise InvalidIndex(
                details={"kind": self.kind.value, "index": position, "count": len(documents)}
            )
        reference = documents[position]
        if delete_file is not None and reference:
            try:
                delete_file(reference)
            except Exception:
                logger.warning("Best-effort delete failed for %s", reference, exc_info=True)
        del documents[position]
        self._paths = documents
        self._legacy = ""
        return reference

    def apply_to(self, record: Any) -> None:
        if self.kind is AttachmentKind.ASSIGNMENT:
            record.assignment_upload_paths = list(self._paths)
            record.assignment_upload_path = self.legacy_mirror
        else:
            record.other_upload_paths = list(self._paths)


def ensure_capacity(record: Any, *, assignment: int = 0, other: int = 0) -> None:
    """Check both ceilings before anything is written for a batch."""
    AttachmentSet.for_record(record, AttachmentKind.ASSIGNMENT).ensure_capacity(assignment)
    AttachmentSet.for_record(record, AttachmentKind.OTHER).ensure_capacity(other)


def append_documents(record: Any, kind: AttachmentKind, references: Sequence[str]) -> list[str]:
    attachments = AttachmentSet.for_record(record, kind)
    attachments.append(references)
    attachments.apply_to(record)
    return attachments.documents


def append_assignment_documents(record: Any, references: Sequence[str]) -> list[str]:
    return append_documents(record, AttachmentKind.ASSIGNMENT, references)


def append_other_documents(record: Any, references: Sequence[str]) -> list[str]:
    return append_documents(record, AttachmentKind.OTHER, references)


def remove_document(
    record: Any,
    kind: AttachmentKind | str,
    index: Any,
    *,
    delete_file: Callable[[str], Any] | None = None,
) -> str:
    kind = kind if isinstance(kind, AttachmentKind) else AttachmentKind.parse(kind)
    attachments = AttachmentSet.for_record(record, kind)
    removed = attachments.remove(index, delete_file=delete_file)
    attachments.apply_to(record)
    return removed


def all_references(record: Any) -> list[str]:
    return (
        AttachmentSet.for_record(record, AttachmentKind.ASSIGNMENT).documents
        + AttachmentSet.for_record(record, AttachmentKind.OTHER).documents
    )
