from uuid import uuid4

import pytest

from app.core.permissions import RecordAction, UserRole
from app.services.authz import AccessControl, OrgLinkage, org_matches, resolve_owner_id

from conftest import make_actor, make_funding_request


class CountingLookup:
    def __init__(self, linkage: OrgLinkage | None = None) -> None:
        self.linkage = linkage
        self.calls = 0

    async def __call__(self, actor_id: str):
        self.calls += 1
        return self.linkage


def _access(role: UserRole, *, actor_id=None, linkage: OrgLinkage | None = None):
    lookup = CountingLookup(linkage)
    return AccessControl(make_actor(role, actor_id=actor_id), lookup), lookup


def test_owner_falls_back_to_legacy_user_id():
    owner = uuid4()
    legacy_owner = uuid4()
    assert resolve_owner_id(make_funding_request(user_id=legacy_owner)) == str(legacy_owner)
    assert resolve_owner_id(make_funding_request(owner_id=owner, user_id=legacy_owner)) == str(owner)
    assert resolve_owner_id(make_funding_request()) == ""


def test_org_match_by_id_or_trimmed_name():
    org_id = uuid4()
    record = make_funding_request(fh_cem_id=org_id, fh_name="Evergreen Funeral Home")

    assert org_matches(OrgLinkage(fh_cem_id=str(org_id)), record)
    assert org_matches(OrgLinkage(fh_name="  evergreen funeral home "), record)
    assert not org_matches(OrgLinkage(fh_cem_id=str(uuid4()), fh_name="Other Home"), record)
    assert not org_matches(OrgLinkage(), record)
    assert not org_matches(None, record)


@pytest.mark.asyncio
async def test_admin_can_do_everything_without_lookup():
    access, lookup = _access(UserRole.ADMIN)
    record = make_funding_request(owner_id=uuid4(), status="Funded")

    for action in RecordAction:
        assert await access.check(action, record) is True
    assert lookup.calls == 0


@pytest.mark.asyncio
async def test_new_user_can_do_nothing_even_as_owner():
    actor_id = uuid4()
    access, lookup = _access(UserRole.NEW, actor_id=actor_id)
    record = make_funding_request(owner_id=actor_id)

    for action in RecordAction:
        assert await access.check(action, record) is False
    assert lookup.calls == 0


@pytest.mark.asyncio
async def test_owner_can_view_edit_delete_while_submitted():
    actor_id = uuid4()
    access, lookup = _access(UserRole.FH_CEM, actor_id=actor_id)
    record = make_funding_request(owner_id=actor_id, status="Submitted")

    assert await access.can_view(record)
    assert await access.can_edit(record)
    assert await access.can_delete(record)
    assert await access.can_delete_attachment(record)
    assert lookup.calls == 0


@pytest.mark.asyncio
async def test_owner_loses_edit_and_delete_after_submission_moves_on():
    actor_id = uuid4()
    access, _ = _access(UserRole.FH_CEM, actor_id=actor_id)
    record = make_funding_request(user_id=actor_id, status="Approved")

    assert await access.can_view(record)
    assert not await access.can_edit(record)
    assert not await access.can_delete(record)
    assert not await access.can_delete_attachment(record)


@pytest.mark.asyncio
async def test_org_mate_can_view_and_edit_but_not_delete():
    org_id = uuid4()
    access, lookup = _access(UserRole.FH_CEM, linkage=OrgLinkage(fh_cem_id=str(org_id)))
    record = make_funding_request(owner_id=uuid4(), fh_cem_id=org_id, status="Submitted")

    assert await access.can_view(record)
    assert await access.can_edit(record)
    assert await access.can_delete_attachment(record)
    assert not await access.can_delete(record)
    assert lookup.calls == 1


@pytest.mark.asyncio
async def test_org_mate_matches_on_name_when_record_has_no_org_id():
    access, _ = _access(UserRole.FH_CEM, linkage=OrgLinkage(fh_name="EVERGREEN FUNERAL HOME"))
    record = make_funding_request(owner_id=uuid4(), fh_cem_id=None, fh_name=" Evergreen Funeral Home ")

    assert await access.can_view(record)


@pytest.mark.asyncio
async def test_unrelated_fh_cem_is_denied():
    access, _ = _access(
        UserRole.FH_CEM, linkage=OrgLinkage(fh_cem_id=str(uuid4()), fh_name="Another Home")
    )
    record = make_funding_request(owner_id=uuid4(), fh_cem_id=uuid4())

    for action in RecordAction:
        assert await access.check(action, record) is False


@pytest.mark.asyncio
async def test_missing_linkage_is_denied():
    access, lookup = _access(UserRole.FH_CEM, linkage=None)
    record = make_funding_request(owner_id=uuid4())

    assert not await access.can_view(record)
    assert not await access.can_edit(record)
    # The absent linkage is remembered.
    assert lookup.calls == 1


@pytest.mark.asyncio
async def test_record_without_owner_is_not_owned_by_anyone():
    access, _ = _access(UserRole.FH_CEM, linkage=None)
    record = make_funding_request(owner_id=None, user_id=None)

    assert not await access.can_delete(record)
