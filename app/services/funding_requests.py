from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence
from uuid import UUID, uuid4

from fastapi import UploadFile
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFound
from app.core.permissions import FundingStatus
from app.models.funding_request import FundingRequest
from app.models.user import User
from app.schemas.funding_requests import FundingRequestCreate, FundingRequestUpdate
from app.services import attachments
from app.services.attachments import AttachmentKind
from app.services.audit import record_audit_event
from app.services.authz import Actor, OrgLinkage
from app.services.storage.service import DocumentStorage, StoredFile

logger = logging.getLogger(__name__)


def _parse_uuid(value: Any) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


async def find_by_id(db: AsyncSession, request_id: Any) -> FundingRequest:
    parsed = _parse_uuid(request_id)
    if parsed is None:
        raise NotFound("Funding request not found")
    stmt = select(FundingRequest).where(FundingRequest.id == parsed)
    record = (await db.execute(stmt)).scalar_one_or_none()
    if record is None:
        raise NotFound("Funding request not found")
    return record


async def save(db: AsyncSession, record: FundingRequest) -> FundingRequest:
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record


async def delete_one(db: AsyncSession, record: FundingRequest) -> None:
    await db.delete(record)
    await db.commit()


async def find_org_linkage(db: AsyncSession, actor_id: Any) -> OrgLinkage | None:
    parsed = _parse_uuid(actor_id)
    if parsed is None:
        return None
    stmt = select(User.fh_cem_id, User.fh_name).where(User.id == parsed)
    row = (await db.execute(stmt)).first()
    if row is None:
        return None
    fh_cem_id, fh_name = row[0], row[1]
    return OrgLinkage(
        fh_cem_id=str(fh_cem_id) if fh_cem_id else None,
        fh_name=fh_name or None,
    )


async def list_own_requests(db: AsyncSession, actor: Actor) -> list[FundingRequest]:
    """Requests the actor owns, newest first; rows without ``owner_id`` fall back to ``user_id``."""
    actor_id = _parse_uuid(actor.id)
    if actor_id is None:
        return []
    stmt = (
        select(FundingRequest)
        .where(
            or_(
                FundingRequest.owner_id == actor_id,
                and_(FundingRequest.owner_id.is_(None), FundingRequest.user_id == actor_id),
            )
        )
        .order_by(FundingRequest.created_at.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def create_request(
    db: AsyncSession,
    storage: DocumentStorage,
    payload: FundingRequestCreate,
    *,
    actor: Actor,
    assignment_files: Sequence[UploadFile] = (),
    other_files: Sequence[UploadFile] = (),
) -> FundingRequest:
    """Intake a new Submitted request owned by ``actor``, with its first documents.

    Nothing is persisted when any file of the batch is rejected.
    """
    record = FundingRequest(
        id=uuid4(),
        owner_id=_parse_uuid(actor.id),
        status=FundingStatus.SUBMITTED.value,
        status_history=[
            {
                "status": FundingStatus.SUBMITTED.value,
                "by": str(actor.id),
                "note": "",
                "at": datetime.now(timezone.utc).isoformat(),
            }
        ],
        assignment_upload_path="",
        assignment_upload_paths=[],
        other_upload_paths=[],
        **payload.model_dump(exclude_none=True),
    )
    linkage = await find_org_linkage(db, actor.id)
    if linkage is not None:
        record.fh_cem_id = _parse_uuid(linkage.fh_cem_id) if linkage.fh_cem_id else None
        if not record.fh_name and linkage.fh_name:
            record.fh_name = linkage.fh_name

    if assignment_files or other_files:
        saved = await append_attachments(
            db,
            storage,
            record,
            assignment_files=assignment_files,
            other_files=other_files,
            actor=actor,
        )
    else:
        saved = await save(db, record)
    record_audit_event(
        actor_id=actor.id,
        action="funding_request.created",
        resource_id=saved.id,
        changes={"fh_cem_id": saved.fh_cem_id, "fh_name": saved.fh_name},
    )
    return saved


async def update_fields(
    db: AsyncSession,
    record: FundingRequest,
    update: FundingRequestUpdate,
    *,
    actor: Actor,
) -> FundingRequest:
    changes = update.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(record, field, value)
    saved = await save(db, record)
    redacted = {k: ("***" if k == "dec_ssn" else v) for k, v in changes.items()}
    record_audit_event(
        actor_id=actor.id, action="funding_request.updated", resource_id=record.id, changes=redacted
    )
    return saved


async def set_status(
    db: AsyncSession,
    record: FundingRequest,
    status: str,
    *,
    actor: Actor,
    note: str = "",
) -> FundingRequest:
    previous = record.status
    record.status = status
    history = list(record.status_history or [])
    history.append(
        {
            "status": status,
            "by": str(actor.id),
            "note": note,
            "at": datetime.now(timezone.utc).isoformat(),
        }
    )
    record.status_history = history
    saved = await save(db, record)
    record_audit_event(
        actor_id=actor.id,
        action="funding_request.status_changed",
        resource_id=record.id,
        changes={"status": {"from": previous, "to": status}},
    )
    return saved


async def append_attachments(
    db: AsyncSession,
    storage: DocumentStorage,
    record: FundingRequest,
    *,
    assignment_files: Sequence[UploadFile] = (),
    other_files: Sequence[UploadFile] = (),
    actor: Actor,
) -> FundingRequest:
    """Validate the whole batch, then write each file and record its reference.

    Files written before a mid-stream failure in the same batch are unlinked
    again so a failed call leaves nothing behind.
    """
    assignment_files = [f for f in assignment_files if f is not None]
    other_files = [f for f in other_files if f is not None]
    attachments.ensure_capacity(
        record, assignment=len(assignment_files), other=len(other_files)
    )
    for upload in (*assignment_files, *other_files):
        storage.validate(upload)

    written: list[str] = []
    try:
        assignment_refs = []
        for upload in assignment_files:
            reference = await storage.save(upload)
            written.append(reference)
            assignment_refs.append(reference)
        other_refs = []
        for upload in other_files:
            reference = await storage.save(upload)
            written.append(reference)
            other_refs.append(reference)
        attachments.append_assignment_documents(record, assignment_refs)
        attachments.append_other_documents(record, other_refs)
        saved = await save(db, record)
    except Exception:
        for reference in written:
            storage.delete_quietly(reference)
        raise

    record_audit_event(
        actor_id=actor.id,
        action="funding_request.attachments_added",
        resource_id=record.id,
        changes={"assignment": assignment_refs, "other": other_refs},
    )
    return saved


async def delete_attachment(
    db: AsyncSession,
    storage: DocumentStorage,
    record: FundingRequest,
    kind: AttachmentKind,
    index: int,
    *,
    actor: Actor,
) -> tuple[FundingRequest, bool]:
    outcome = {"deleted": False}

    def _unlink(reference: str) -> None:
        outcome["deleted"] = storage.delete_quietly(reference)

    removed = attachments.remove_document(record, kind, index, delete_file=_unlink)
    saved = await save(db, record)
    record_audit_event(
        actor_id=actor.id,
        action="funding_request.attachment_removed",
        resource_id=record.id,
        changes={"kind": kind.value, "index": index, "reference": removed},
    )
    return saved, outcome["deleted"]


async def delete_record(
    db: AsyncSession,
    storage: DocumentStorage,
    record: FundingRequest,
    *,
    actor: Actor,
) -> None:
    references = attachments.all_references(record)
    for reference in references:
        storage.delete_quietly(reference)
    record_id = record.id
    await delete_one(db, record)
    record_audit_event(
        actor_id=actor.id,
        action="funding_request.deleted",
        resource_id=record_id,
        changes={"attachments": references},
    )


def locate_assignment_document(
    storage: DocumentStorage, record: FundingRequest, index: int | None = None
) -> StoredFile:
    documents = attachments.AttachmentSet.for_record(record, AttachmentKind.ASSIGNMENT).documents
    documents = [doc for doc in documents if doc and doc.strip()]
    if not documents:
        raise NotFound("No assignment uploaded")
    if index is not None:
        index = max(0, index)
    position = 0 if index is None else min(len(documents) - 1, index)
    stored = storage.describe(documents[position])
    if len(documents) > 1 and index is not None:
        stem, dot, ext = stored.filename.rpartition(".")
        if not dot:
            stem, ext = stored.filename, ""
        filename = f"{stem}.part-{index}{'.' + ext if ext else ''}"
        return StoredFile(
            path=stored.path,
            size_bytes=stored.size_bytes,
            content_type=stored.content_type,
            filename=filename,
        )
    return stored


def locate_other_document(
    storage: DocumentStorage, record: FundingRequest, index: int
) -> StoredFile:
    documents = attachments.AttachmentSet.for_record(record, AttachmentKind.OTHER).documents
    if index >= len(documents):
        raise NotFound("File not found")
    return storage.describe(documents[index])
