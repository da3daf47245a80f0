"""
Registration Request Models

One request per student or academic leader signup, decided by a university
administrator of the university the user registered against.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from trustteams.modules.shared import BaseModel, pg_enum
from trustteams.modules.users.models import UserRole


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RegistrationRequest(BaseModel):
    """Pending registration of a student or academic leader."""

    __tablename__ = "registration_requests"

    # 1:1 with the pending user; removed together with the user
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    university_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("universities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    institute_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(pg_enum(UserRole, "user_role"), nullable=False)
    status: Mapped[RequestStatus] = mapped_column(
        pg_enum(RequestStatus, "registration_request_status"),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True,
    )

    approved_by: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<RegistrationRequest(id={self.id}, user_id={self.user_id}, status={self.status.value})>"
