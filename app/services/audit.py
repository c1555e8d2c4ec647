from __future__ import annotations

from datetime import date, datetime
from typing import Any

from fastapi.encoders import jsonable_encoder

from app.core.logging import get_audit_logger


def serialize_for_audit(value: Any) -> Any:
    return jsonable_encoder(
        value,
        custom_encoder={
            datetime: lambda v: v.isoformat(),
            date: lambda v: v.isoformat(),
        },
    )


def record_audit_event(
    *,
    actor_id: Any,
    action: str,
    resource_id: Any,
    resource_type: str = "funding_request",
    changes: dict[str, Any] | None = None,
) -> None:
    get_audit_logger().info(
        action,
        extra={
            "audit_actor_id": str(actor_id) if actor_id is not None else None,
            "action": action,
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            "changes": serialize_for_audit(changes or {}),
        },
    )
