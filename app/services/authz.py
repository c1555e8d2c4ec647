"""Record-level access decisions for funding requests.

ADMIN may do anything, NEW may do nothing. Everyone else is judged on
ownership, the record status and whether they belong to the same FH/CEM
organization as the record.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from app.core.permissions import EDITABLE_STATUSES, RecordAction, UserRole


@dataclass(frozen=True, slots=True)
class Actor:
    id: str
    role: UserRole
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


@dataclass(frozen=True, slots=True)
class OrgLinkage:
    fh_cem_id: str | None = None
    fh_name: str | None = None


OrgLinkageLookup = Callable[[str], Awaitable[Optional[OrgLinkage]]]


def _as_id(value: Any) -> str:
    return str(value) if value is not None else ""


def _normalize_name(value: str | None) -> str:
    return (value or "").strip().casefold()


def resolve_owner_id(record: Any) -> str:
    return _as_id(getattr(record, "owner_id", None) or getattr(record, "user_id", None))


def is_owner(actor: Actor, record: Any) -> bool:
    owner = resolve_owner_id(record)
    return bool(owner) and owner == _as_id(actor.id)


def is_editable_status(record: Any) -> bool:
    return getattr(record, "status", None) in EDITABLE_STATUSES


def org_matches(linkage: OrgLinkage | None, record: Any) -> bool:
    if linkage is None:
        return False
    record_org = _as_id(getattr(record, "fh_cem_id", None))
    if linkage.fh_cem_id and record_org and _as_id(linkage.fh_cem_id) == record_org:
        return True
    mine = _normalize_name(linkage.fh_name)
    theirs = _normalize_name(getattr(record, "fh_name", None))
    return bool(mine and theirs and mine == theirs)


class AccessControl:
    """Evaluates the permission matrix for one actor.

    The actor's organization linkage is read through ``lookup`` at most once,
    and only for FH_CEM actors.
    """

    def __init__(self, actor: Actor, lookup: OrgLinkageLookup) -> None:
        self.actor = actor
        self._lookup = lookup
        self._linkage: OrgLinkage | None = None
        self._linkage_loaded = False

    async def _org_linkage(self) -> OrgLinkage | None:
        if not self._linkage_loaded:
            self._linkage = await self._lookup(self.actor.id)
            self._linkage_loaded = True
        return self._linkage

    async def is_same_organization(self, record: Any) -> bool:
        if self.actor.role is not UserRole.FH_CEM:
            return False
        return org_matches(await self._org_linkage(), record)

    async def can_view(self, record: Any) -> bool:
        if self.actor.role is UserRole.ADMIN:
            return True
        if self.actor.role is UserRole.NEW:
            return False
        if is_owner(self.actor, record):
            return True
        return await self.is_same_organization(record)

    async def can_edit(self, record: Any) -> bool:
        if self.actor.role is UserRole.ADMIN:
            return True
        if self.actor.role is UserRole.NEW:
            return False
        if not is_editable_status(record):
            return False
        if is_owner(self.actor, record):
            return True
        return await self.is_same_organization(record)

    async def can_delete(self, record: Any) -> bool:
        if self.actor.role is UserRole.ADMIN:
            return True
        if self.actor.role is UserRole.NEW:
            return False
        return is_owner(self.actor, record) and is_editable_status(record)

    async def can_delete_attachment(self, record: Any) -> bool:
        return await self.can_edit(record)

    async def check(self, action: RecordAction, record: Any) -> bool:
        checks = {
            RecordAction.VIEW: self.can_view,
            RecordAction.EDIT: self.can_edit,
            RecordAction.DELETE: self.can_delete,
            RecordAction.DELETE_ATTACHMENT: self.can_delete_attachment,
        }
        return await checks[action](record)
