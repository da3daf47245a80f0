"""
User Models

Identity, role and account lifecycle flags for every platform user.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from trustteams.modules.shared import BaseModel, pg_enum


class UserRole(str, Enum):
    """User roles in the system."""

    ADMIN = "admin"
    MANAGER = "manager"
    VIEWER = "viewer"
    STUDENT = "student"
    ACADEMIC_LEADER = "academic_leader"
    UNIVERSITY_ADMIN = "university_admin"
    ICM = "icm"


class ApprovalStatus(str, Enum):
    """Approval gate for student and academic leader accounts."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Roles whose accounts must be approved by a university administrator
APPROVAL_REQUIRED_ROLES = frozenset({UserRole.STUDENT, UserRole.ACADEMIC_LEADER})


class User(BaseModel):
    """
    Platform user.

    Students and academic leaders start with approval_status=pending and
    is_active=False; they can only log in once a university administrator
    approves them and their email is verified. Every other role is approved
    at creation but still needs a verified email to log in.
    """

    __tablename__ = "users"

    # ON DELETE SET NULL: users survive their university being removed
    university_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("universities.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    institute_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        pg_enum(UserRole, "user_role"),
        nullable=False,
        default=UserRole.VIEWER,
    )

    # Account status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        pg_enum(ApprovalStatus, "approval_status"),
        nullable=False,
        default=ApprovalStatus.APPROVED,
    )
    approved_by: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Email verification (token is stored as a SHA-256 hash)
    email_verification_token: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    email_verification_expires: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"

    @property
    def requires_approval(self) -> bool:
        return self.role in APPROVAL_REQUIRED_ROLES

    @property
    def email_domain(self) -> str:
        """Lower-cased domain part of the email address."""
        return self.email.rsplit("@", 1)[-1].lower() if "@" in self.email else ""
