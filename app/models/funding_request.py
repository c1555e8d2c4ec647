import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID

from app.db.base import Base
from app.models.types import EncryptedString


FUNDING_STATUSES = ("Submitted", "Verifying", "Approved", "Funded", "Closed")


class FundingRequest(Base):
    __tablename__ = "funding_requests"
    __table_args__ = (
        CheckConstraint(
            "status IN ('Submitted', 'Verifying', 'Approved', 'Funded', 'Closed')",
            name="ck_funding_request_status",
        ),
        Index("ix_funding_requests_owner_created", "owner_id", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    # legacy owner column; owner_id wins when both are set
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    fh_cem_id = Column(
        UUID(as_uuid=True), ForeignKey("fh_cems.id", ondelete="SET NULL"), nullable=True, index=True
    )

    fh_name = Column(String(255), nullable=True)
    fh_rep = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    contact_email = Column(String(255), nullable=True)
    dec_first_name = Column(String(100), nullable=True)
    dec_last_name = Column(String(100), nullable=True)
    dec_ssn = Column(EncryptedString(), nullable=True)
    insurance_company = Column(String(255), nullable=True)
    notes = Column(String(2000), nullable=True)

    assignment_upload_path = Column(String(1024), nullable=False, default="", server_default="")
    assignment_upload_paths = Column(JSONB, nullable=False, default=list)
    other_upload_paths = Column(JSONB, nullable=False, default=list)

    status = Column(String(16), nullable=False, default="Submitted", index=True)
    status_history = Column(JSONB, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
