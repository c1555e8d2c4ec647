from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import set_actor_id
from app.core.errors import Forbidden, Unauthorized
from app.core.permissions import RecordAction, UserRole
from app.core.security import decode_session_token
from app.core.settings import settings
from app.db.session import get_db
from app.models.funding_request import FundingRequest
from app.services import funding_requests
from app.services.authz import AccessControl, Actor
from app.services.storage.service import DocumentStorage, get_document_storage

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session(db: AsyncSession = Depends(get_db)) -> AsyncSession:
    return db


def get_storage() -> DocumentStorage:
    return get_document_storage()


async def get_current_actor(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Actor:
    token = credentials.credentials if credentials else request.cookies.get(settings.session_cookie_name)
    if not token:
        raise Unauthorized()
    try:
        payload = decode_session_token(token)
    except ValueError as exc:
        raise Unauthorized() from exc
    actor = Actor(
        id=str(payload["sub"]),
        role=UserRole.parse(payload.get("role")),
        email=payload.get("email"),
    )
    set_actor_id(actor.id)
    return actor


async def require_approved_actor(actor: Actor = Depends(get_current_actor)) -> Actor:
    if actor.role is UserRole.NEW:
        raise Forbidden("Approval required before accessing funding requests.")
    return actor


async def require_admin(actor: Actor = Depends(require_approved_actor)) -> Actor:
    if not actor.is_admin:
        raise Forbidden()
    return actor


async def get_access_control(
    actor: Actor = Depends(require_approved_actor),
    db: AsyncSession = Depends(get_db_session),
) -> AccessControl:
    async def _lookup(actor_id: str):
        return await funding_requests.find_org_linkage(db, actor_id)

    return AccessControl(actor, _lookup)


def authorized_request(action: RecordAction):
    """Load ``request_id`` from the path and enforce ``action`` on it."""

    async def dependency(
        request_id: str,
        access: AccessControl = Depends(get_access_control),
        db: AsyncSession = Depends(get_db_session),
    ) -> FundingRequest:
        record = await funding_requests.find_by_id(db, request_id)
        if not await access.check(action, record):
            raise Forbidden()
        return record

    return dependency
