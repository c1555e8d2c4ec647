from uuid import uuid4

from app.core.permissions import FundingStatus, UserRole
from app.models.funding_request import FUNDING_STATUSES, FundingRequest
from app.models.types import EncryptedString
from app.schemas.funding_requests import FundingRequestDTO


def test_encrypted_string_round_trip():
    column_type = EncryptedString(secret="unit-test-secret")

    stored = column_type.process_bind_param("123-45-6789", dialect=None)

    assert isinstance(stored, bytes)
    assert b"123-45-6789" not in stored
    assert column_type.process_result_value(stored, dialect=None) == "123-45-6789"


def test_encrypted_string_stores_blank_as_null():
    column_type = EncryptedString(secret="unit-test-secret")

    assert column_type.process_bind_param("", dialect=None) is None
    assert column_type.process_bind_param(None, dialect=None) is None
    assert column_type.process_result_value(None, dialect=None) is None


def test_status_enum_matches_column_constraint():
    assert tuple(FundingStatus.list_all()) == FUNDING_STATUSES


def test_unknown_role_is_treated_as_new():
    assert UserRole.parse("fh_cem") is UserRole.FH_CEM
    assert UserRole.parse("SUPERUSER") is UserRole.NEW
    assert UserRole.parse(None) is UserRole.NEW


def test_dto_normalizes_missing_attachment_fields():
    record = FundingRequest(
        id=uuid4(),
        status="Submitted",
        assignment_upload_path=None,
        assignment_upload_paths=None,
        other_upload_paths=None,
    )

    dto = FundingRequestDTO.model_validate(record)

    assert dto.assignment_upload_path == ""
    assert dto.assignment_upload_paths == []
    assert dto.other_upload_paths == []
