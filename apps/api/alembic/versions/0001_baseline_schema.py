"""baseline schema

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-18 09:00:00.000000

Creates every table of the platform:
1. universities and users (with the user_role / approval_status enums)
2. registration_requests for students and academic leaders awaiting approval
3. opportunities and their append-only opportunity_audit trail
4. opportunity_applications, unique per (opportunity, student)
5. student_profiles and icm_profiles (JSONB documents, 1:1 with users)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_baseline"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


ENUMS = {
    "user_role": (
        "admin",
        "manager",
        "viewer",
        "student",
        "academic_leader",
        "university_admin",
        "icm",
    ),
    "approval_status": ("pending", "approved", "rejected"),
    "registration_request_status": ("pending", "approved", "rejected"),
    "opportunity_type": ("internship", "job", "research", "research_paper", "project", "other"),
    "opportunity_status": ("open", "closed"),
    "opportunity_audit_action": ("CREATE", "UPDATE", "DELETE", "AUTO_CLOSE"),
    "application_status": ("pending", "approved", "rejected", "withdrawn"),
}


def _enum(name: str) -> postgresql.ENUM:
    # Types are created up front; columns must not try again
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _base_columns() -> list[sa.Column]:
    """Primary key and timestamps shared by every table (see shared.models.BaseModel)."""
    return [
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "universities",
        *_base_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("website", sa.String(length=255), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=20), nullable=True),
        sa.Column("established_year", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_universities_name"), "universities", ["name"], unique=True)
    op.create_index(op.f("ix_universities_domain"), "universities", ["domain"], unique=True)

    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("university_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("institute_name", sa.String(length=255), nullable=True),
        sa.Column("role", _enum("user_role"), nullable=False, server_default="viewer"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "approval_status",
            _enum("approval_status"),
            nullable=False,
            server_default="approved",
        ),
        sa.Column("approved_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("email_verification_token", sa.String(length=255), nullable=True),
        sa.Column("email_verification_expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["university_id"],
            ["universities.id"],
            name="fk_users_university_id",
            ondelete="SET NULL",
        ),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_university_id"), "users", ["university_id"], unique=False)
    op.create_index(
        op.f("ix_users_email_verification_token"),
        "users",
        ["email_verification_token"],
        unique=False,
    )

    op.create_table(
        "registration_requests",
        *_base_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("university_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("institute_name", sa.String(length=255), nullable=True),
        sa.Column("role", _enum("user_role"), nullable=False),
        sa.Column(
            "status",
            _enum("registration_request_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("approved_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_registration_requests_user_id",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["university_id"],
            ["universities.id"],
            name="fk_registration_requests_university_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("user_id", name="uq_registration_requests_user_id"),
    )
    op.create_index(
        op.f("ix_registration_requests_university_id"),
        "registration_requests",
        ["university_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_registration_requests_status"),
        "registration_requests",
        ["status"],
        unique=False,
    )

    op.create_table(
        "opportunities",
        *_base_columns(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("type", _enum("opportunity_type"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("requirements", sa.Text(), nullable=True),
        sa.Column("stipend", sa.String(length=100), nullable=True),
        sa.Column("duration", sa.String(length=100), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("status", _enum("opportunity_status"), nullable=False, server_default="open"),
        sa.Column("closing_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("posted_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=30), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["posted_by"],
            ["users.id"],
            name="fk_opportunities_posted_by",
            ondelete="SET NULL",
        ),
    )
    op.create_index(op.f("ix_opportunities_type"), "opportunities", ["type"], unique=False)
    op.create_index(op.f("ix_opportunities_status"), "opportunities", ["status"], unique=False)
    op.create_index(
        op.f("ix_opportunities_posted_by"), "opportunities", ["posted_by"], unique=False
    )

    op.create_table(
        "opportunity_audit",
        *_base_columns(),
        sa.Column("opportunity_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("action", _enum("opportunity_audit_action"), nullable=False),
        sa.Column("changed_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("old_values", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("new_values", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["opportunity_id"],
            ["opportunities.id"],
            name="fk_opportunity_audit_opportunity_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        op.f("ix_opportunity_audit_opportunity_id"),
        "opportunity_audit",
        ["opportunity_id"],
        unique=False,
    )

    op.create_table(
        "opportunity_applications",
        *_base_columns(),
        sa.Column("opportunity_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "status",
            _enum("application_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "application_date",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("cover_letter", sa.Text(), nullable=True),
        sa.Column("gpa", sa.Float(), nullable=True),
        sa.Column("expected_graduation", sa.String(length=50), nullable=True),
        sa.Column("relevant_courses", sa.Text(), nullable=True),
        sa.Column("skills", sa.Text(), nullable=True),
        sa.Column("experience_summary", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["opportunity_id"],
            ["opportunities.id"],
            name="fk_opportunity_applications_opportunity_id",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["student_id"],
            ["users.id"],
            name="fk_opportunity_applications_student_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "opportunity_id",
            "student_id",
            name="uq_application_opportunity_student",
        ),
    )
    op.create_index(
        op.f("ix_opportunity_applications_opportunity_id"),
        "opportunity_applications",
        ["opportunity_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_opportunity_applications_student_id"),
        "opportunity_applications",
        ["student_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_opportunity_applications_status"),
        "opportunity_applications",
        ["status"],
        unique=False,
    )

    op.create_table(
        "student_profiles",
        *_base_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("github_url", sa.String(length=512), nullable=True),
        sa.Column("linkedin_url", sa.String(length=512), nullable=True),
        sa.Column("website_url", sa.String(length=512), nullable=True),
        sa.Column("resume_url", sa.String(length=512), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        *[
            sa.Column(
                section,
                postgresql.JSONB(astext_type=sa.Text()),
                nullable=False,
                server_default=sa.text("'[]'::jsonb"),
            )
            for section in ("skills", "experiences", "education", "projects")
        ],
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_student_profiles_user_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("user_id", name="uq_student_profiles_user_id"),
    )

    op.create_table(
        "icm_profiles",
        *_base_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=False),
        *[
            sa.Column(
                section,
                postgresql.JSONB(astext_type=sa.Text()),
                nullable=False,
                server_default=sa.text("'{}'::jsonb"),
            )
            for section in ("company", "culture", "recruitment", "highlights", "people")
        ],
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_icm_profiles_user_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("user_id", name="uq_icm_profiles_user_id"),
    )


def downgrade() -> None:
    op.drop_table("icm_profiles")
    op.drop_table("student_profiles")
    op.drop_table("opportunity_applications")
    op.drop_table("opportunity_audit")
    op.drop_table("opportunities")
    op.drop_table("registration_requests")
    op.drop_table("users")
    op.drop_table("universities")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
