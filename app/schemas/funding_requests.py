from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.core.permissions import FundingStatus


class FundingRequestDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID | None = None
    user_id: UUID | None = None
    fh_cem_id: UUID | None = None
    fh_name: str | None = None
    fh_rep: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    dec_first_name: str | None = None
    dec_last_name: str | None = None
    insurance_company: str | None = None
    notes: str | None = None
    status: str
    assignment_upload_path: str = ""
    assignment_upload_paths: list[str] = Field(default_factory=list)
    other_upload_paths: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("assignment_upload_paths", "other_upload_paths", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return value or []

    @field_validator("assignment_upload_path", mode="before")
    @classmethod
    def _none_as_blank(cls, value):
        return value or ""


class _FundingRequestFields(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    fh_name: str | None = Field(default=None, max_length=255)
    fh_rep: str | None = Field(default=None, max_length=255)
    contact_phone: str | None = Field(default=None, max_length=50)
    contact_email: EmailStr | None = None
    dec_first_name: str | None = Field(default=None, max_length=100)
    dec_last_name: str | None = Field(default=None, max_length=100)
    dec_ssn: str | None = Field(default=None, pattern=r"^\d{3}-?\d{2}-?\d{4}$")
    insurance_company: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=2000)


class FundingRequestCreate(_FundingRequestFields):
    """Intake form; owner and organization come from the session, never the body."""


class FundingRequestUpdate(_FundingRequestFields):
    """Fields an owner or organization-mate may change while a request is Submitted."""


class FundingRequestSummary(BaseModel):
    id: UUID
    dec_name: str = ""
    insurance_company: str = ""
    fh_rep: str = ""
    status: str
    created_at: datetime | None = None


class FundingRequestListResponse(BaseModel):
    items: list[FundingRequestSummary]
    total: int


class FundingStatusUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    status: FundingStatus
    note: str = Field(default="", max_length=1000)


class FundingStatusResponse(BaseModel):
    id: UUID
    status: str
    updated_at: datetime | None = None


class AttachmentsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    assignment_upload_path: str = ""
    assignment_upload_paths: list[str] = Field(default_factory=list)
    other_upload_paths: list[str] = Field(default_factory=list)

    @field_validator("assignment_upload_paths", "other_upload_paths", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return value or []

    @field_validator("assignment_upload_path", mode="before")
    @classmethod
    def _none_as_blank(cls, value):
        return value or ""


class AttachmentDeleteResponse(AttachmentsResponse):
    deleted: bool
    kind: str
    index: int
