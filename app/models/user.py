import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('ADMIN', 'FH_CEM', 'NEW')", name="ck_users_role"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(String(16), nullable=False, server_default="NEW")
    fh_cem_id = Column(
        UUID(as_uuid=True), ForeignKey("fh_cems.id", ondelete="SET NULL"), nullable=True, index=True
    )
    fh_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    fh_cem = relationship("FHCem", foreign_keys=[fh_cem_id])
