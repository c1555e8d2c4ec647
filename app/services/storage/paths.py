"""
Resolution of stored document references to files on disk.

Uploads moved directory once, so a reference may live under the primary
upload root or under the legacy parent root. Some historical rows also hold
an absolute path whose directory is stale but whose file name is still
valid, hence the basename-only candidates.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Sequence

from app.core.errors import IntegrityFault, NotFound

logger = logging.getLogger(__name__)

_LEGACY_PREFIX = "uploads/"


def normalize_reference(stored: str | None) -> str:
    """Strip whitespace, leading separators and an ``uploads/`` prefix."""
    relative = str(stored or "").strip().replace("\\", "/")
    relative = relative.lstrip("/")
    if relative.lower().startswith(_LEGACY_PREFIX):
        relative = relative[len(_LEGACY_PREFIX):]
    return relative


def _lexical(path: str | Path) -> Path:
    return Path(os.path.normpath(os.path.abspath(path)))


def candidate_paths(stored: str | None, roots: Sequence[str | Path]) -> list[Path]:
    """Ordered, de-duplicated candidates: each root with the full path, then the basename."""
    relative = normalize_reference(stored)
    basename = relative.rsplit("/", 1)[-1]
    candidates: list[Path] = []
    for root in roots:
        for tail in (relative, basename):
            candidate = _lexical(os.path.join(_lexical(root), tail))
            if candidate not in candidates:
                candidates.append(candidate)
    return candidates


def is_within_roots(candidate: str | Path, roots: Sequence[str | Path]) -> bool:
    """True when ``candidate`` sits strictly below one of ``roots`` (lexically)."""
    target = _lexical(candidate)
    for root in roots:
        relative = os.path.relpath(target, _lexical(root))
        if relative == "." or os.path.isabs(relative):
            continue
        if relative.split(os.sep)[0] == "..":
            continue
        return True
    return False


def resolve_reference(
    stored: str | None,
    roots: Sequence[str | Path],
    *,
    is_file: Callable[[Path], bool] = os.path.isfile,
) -> Path:
    """Return the first contained candidate that exists as a regular file.

    Raises ``NotFound`` for an empty reference and ``IntegrityFault`` when a
    non-empty reference has no file under any allowed root.
    """
    relative = normalize_reference(stored)
    if not relative:
        raise NotFound("No document uploaded")

    candidates = candidate_paths(relative, roots)
    for candidate in candidates:
        if not is_within_roots(candidate, roots):
            logger.warning(
                "Rejected document candidate outside allowed roots",
                extra={"stored": stored, "candidate": str(candidate)},
            )
            continue
        if is_file(candidate):
            return candidate

    logger.warning(
        "Document file not found in allowed roots",
        extra={
            "stored": stored,
            "normalized": relative,
            "tried": [str(c) for c in candidates],
            "roots": [str(_lexical(r)) for r in roots],
        },
    )
    raise IntegrityFault()
