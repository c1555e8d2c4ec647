from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import RecordAction
from app.models.funding_request import FundingRequest
from app.schemas.funding_requests import (
    AttachmentDeleteResponse,
    AttachmentsResponse,
    FundingRequestCreate,
    FundingRequestDTO,
    FundingRequestListResponse,
    FundingRequestSummary,
    FundingRequestUpdate,
    FundingStatusResponse,
    FundingStatusUpdate,
)
from app.services import funding_requests
from app.services.attachments import AttachmentKind, parse_index
from app.services.authz import Actor
from app.services.storage.service import DocumentStorage, StoredFile


router = APIRouter(prefix="/requests", tags=["funding-requests"])

_UPLOAD_FIELDS = frozenset({"assignmentUploads", "otherUploads"})


def _file_response(stored: StoredFile) -> FileResponse:
    return FileResponse(
        stored.path,
        media_type=stored.content_type,
        filename=stored.filename,
        headers={"Cache-Control": "private, no-store"},
    )


async def _attachment_target(kind: str, index: str) -> tuple[AttachmentKind, int]:
    return AttachmentKind.parse(kind), parse_index(index)


async def _intake_form(request: Request) -> FundingRequestCreate:
    """Every non-file form field must be a known intake field; blank values are dropped."""
    form = await request.form()
    fields = {}
    for key, value in form.multi_items():
        if key in _UPLOAD_FIELDS:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        fields[key] = value
    try:
        return FundingRequestCreate.model_validate(fields)
    except ValidationError as exc:
        errors = [{**error, "loc": ("body", *error["loc"])} for error in exc.errors(include_url=False)]
        raise RequestValidationError(errors) from exc


def _summary(record: FundingRequest) -> FundingRequestSummary:
    return FundingRequestSummary(
        id=record.id,
        dec_name=" ".join(part for part in (record.dec_first_name, record.dec_last_name) if part),
        insurance_company=record.insurance_company or "",
        fh_rep=record.fh_rep or "",
        status=record.status or "Submitted",
        created_at=record.created_at,
    )


@router.get(
    "",
    response_model=FundingRequestListResponse,
    summary="List the caller's own funding requests",
)
async def list_requests(
    actor: Actor = Depends(deps.require_approved_actor),
    db: AsyncSession = Depends(deps.get_db_session),
) -> FundingRequestListResponse:
    records = await funding_requests.list_own_requests(db, actor)
    return FundingRequestListResponse(items=[_summary(r) for r in records], total=len(records))


@router.post(
    "",
    response_model=FundingRequestDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a new funding request with its documents",
)
async def create_request(
    actor: Actor = Depends(deps.require_approved_actor),
    payload: FundingRequestCreate = Depends(_intake_form),
    assignment_uploads: list[UploadFile] | None = File(default=None, alias="assignmentUploads"),
    other_uploads: list[UploadFile] | None = File(default=None, alias="otherUploads"),
    db: AsyncSession = Depends(deps.get_db_session),
    storage: DocumentStorage = Depends(deps.get_storage),
) -> FundingRequestDTO:
    created = await funding_requests.create_request(
        db,
        storage,
        payload,
        actor=actor,
        assignment_files=assignment_uploads or [],
        other_files=other_uploads or [],
    )
    return FundingRequestDTO.model_validate(created)


@router.get(
    "/{request_id}",
    response_model=FundingRequestDTO,
    summary="Get a funding request",
)
async def get_request(
    record: FundingRequest = Depends(deps.authorized_request(RecordAction.VIEW)),
) -> FundingRequestDTO:
    return FundingRequestDTO.model_validate(record)


@router.patch(
    "/{request_id}",
    response_model=FundingRequestDTO,
    summary="Update editable fields of a funding request",
)
async def update_request(
    payload: FundingRequestUpdate,
    record: FundingRequest = Depends(deps.authorized_request(RecordAction.EDIT)),
    actor: Actor = Depends(deps.require_approved_actor),
    db: AsyncSession = Depends(deps.get_db_session),
) -> FundingRequestDTO:
    updated = await funding_requests.update_fields(db, record, payload, actor=actor)
    return FundingRequestDTO.model_validate(updated)


@router.delete(
    "/{request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a funding request and its documents",
)
async def delete_request(
    record: FundingRequest = Depends(deps.authorized_request(RecordAction.DELETE)),
    actor: Actor = Depends(deps.require_approved_actor),
    db: AsyncSession = Depends(deps.get_db_session),
    storage: DocumentStorage = Depends(deps.get_storage),
) -> None:
    await funding_requests.delete_record(db, storage, record, actor=actor)
    return None


@router.patch(
    "/{request_id}/status",
    response_model=FundingStatusResponse,
    summary="Move a funding request to another lifecycle status",
)
async def update_status(
    request_id: str,
    payload: FundingStatusUpdate,
    actor: Actor = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db_session),
) -> FundingStatusResponse:
    record = await funding_requests.find_by_id(db, request_id)
    updated = await funding_requests.set_status(
        db, record, payload.status, actor=actor, note=payload.note
    )
    return FundingStatusResponse(id=updated.id, status=updated.status, updated_at=updated.updated_at)


@router.get(
    "/{request_id}/assignment",
    response_class=FileResponse,
    summary="Download an assignment document",
)
async def download_assignment(
    i: int | None = Query(default=None),
    record: FundingRequest = Depends(deps.authorized_request(RecordAction.VIEW)),
    storage: DocumentStorage = Depends(deps.get_storage),
) -> FileResponse:
    stored = funding_requests.locate_assignment_document(storage, record, i)
    return _file_response(stored)


@router.get(
    "/{request_id}/other-docs/{index}",
    response_class=FileResponse,
    summary="Download a supplementary document",
)
async def download_other_document(
    index: str,
    record: FundingRequest = Depends(deps.authorized_request(RecordAction.VIEW)),
    storage: DocumentStorage = Depends(deps.get_storage),
) -> FileResponse:
    stored = funding_requests.locate_other_document(storage, record, parse_index(index))
    return _file_response(stored)


@router.post(
    "/{request_id}/attachments",
    response_model=AttachmentsResponse,
    summary="Upload assignment and supplementary documents",
)
async def add_attachments(
    assignment_uploads: list[UploadFile] | None = File(default=None, alias="assignmentUploads"),
    other_uploads: list[UploadFile] | None = File(default=None, alias="otherUploads"),
    record: FundingRequest = Depends(deps.authorized_request(RecordAction.EDIT)),
    actor: Actor = Depends(deps.require_approved_actor),
    db: AsyncSession = Depends(deps.get_db_session),
    storage: DocumentStorage = Depends(deps.get_storage),
) -> AttachmentsResponse:
    updated = await funding_requests.append_attachments(
        db,
        storage,
        record,
        assignment_files=assignment_uploads or [],
        other_files=other_uploads or [],
        actor=actor,
    )
    return AttachmentsResponse.model_validate(updated)


@router.delete(
    "/{request_id}/attachments/{kind}/{index}",
    response_model=AttachmentDeleteResponse,
    summary="Delete one attachment by kind and position",
)
async def delete_attachment(
    target: tuple[AttachmentKind, int] = Depends(_attachment_target),
    record: FundingRequest = Depends(deps.authorized_request(RecordAction.DELETE_ATTACHMENT)),
    actor: Actor = Depends(deps.require_approved_actor),
    db: AsyncSession = Depends(deps.get_db_session),
    storage: DocumentStorage = Depends(deps.get_storage),
) -> AttachmentDeleteResponse:
    kind, index = target
    updated, deleted = await funding_requests.delete_attachment(
        db, storage, record, kind, index, actor=actor
    )
    payload = AttachmentsResponse.model_validate(updated).model_dump()
    return AttachmentDeleteResponse(**payload, deleted=deleted, kind=kind.value, index=index)
