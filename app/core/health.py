from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text

from app.core.settings import settings
from app.db.session import Database
from app.services.storage.service import DocumentStorage

APP_VERSION = "0.1.0"


async def _check_db(database: Database) -> dict[str, str]:
    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as exc:  # pragma: no cover - exercised in runtime
        return {"status": "error", "error": str(exc)}


async def _check_storage(storage: DocumentStorage) -> dict[str, str]:
    return storage.check_roots()


def _overall_status(checks: dict[str, dict[str, Any]]) -> tuple[str, bool]:
    ready = all(check.get("status") == "ok" for check in checks.values())
    return ("ok" if ready else "degraded", ready)


async def live_payload() -> dict[str, str]:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def ready_payload(database: Database, storage: DocumentStorage) -> dict[str, Any]:
    checks = {
        "api": {"status": "ok", "version": APP_VERSION},
        "database": await _check_db(database),
        "storage": await _check_storage(storage),
    }
    overall, ready = _overall_status(checks)
    return {
        "status": overall,
        "ready": ready,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
