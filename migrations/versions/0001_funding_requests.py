"""fh_cems, users and funding_requests

Revision ID: 0001_funding_requests
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001_funding_requests"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "fh_cems",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("name", name="uq_fh_cems_name"),
    )

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="NEW"),
        sa.Column("fh_cem_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("fh_name", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["fh_cem_id"], ["fh_cems.id"], ondelete="SET NULL"),
        sa.CheckConstraint("role IN ('ADMIN', 'FH_CEM', 'NEW')", name="ck_users_role"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_fh_cem_id", "users", ["fh_cem_id"])

    op.create_table(
        "funding_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("fh_cem_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("fh_name", sa.String(length=255), nullable=True),
        sa.Column("fh_rep", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=50), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("dec_first_name", sa.String(length=100), nullable=True),
        sa.Column("dec_last_name", sa.String(length=100), nullable=True),
        sa.Column("dec_ssn", sa.LargeBinary(), nullable=True),
        sa.Column("insurance_company", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        sa.Column("assignment_upload_path", sa.String(length=1024), nullable=False, server_default=""),
        sa.Column(
            "assignment_upload_paths",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "other_upload_paths",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="Submitted"),
        sa.Column(
            "status_history",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["fh_cem_id"], ["fh_cems.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "status IN ('Submitted', 'Verifying', 'Approved', 'Funded', 'Closed')",
            name="ck_funding_request_status",
        ),
    )
    op.create_index("ix_funding_requests_owner_id", "funding_requests", ["owner_id"])
    op.create_index("ix_funding_requests_user_id", "funding_requests", ["user_id"])
    op.create_index("ix_funding_requests_fh_cem_id", "funding_requests", ["fh_cem_id"])
    op.create_index("ix_funding_requests_status", "funding_requests", ["status"])
    op.create_index(
        "ix_funding_requests_owner_created", "funding_requests", ["owner_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_table("funding_requests")
    op.drop_index("ix_users_fh_cem_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_table("fh_cems")
