"""
Application Models

Student applications to opportunities and their status state machine.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Float, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from trustteams.modules.shared import BaseModel, pg_enum


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class TransitionActor(str, Enum):
    """Who is moving an application to a new status."""

    REVIEWER = "reviewer"
    APPLICANT = "applicant"


# Allowed status changes per actor. Anything not listed is terminal.
# A reviewer may keep an application pending to update the review notes.
VALID_STATUS_TRANSITIONS: dict[TransitionActor, dict[ApplicationStatus, frozenset[ApplicationStatus]]] = {
    TransitionActor.REVIEWER: {
        ApplicationStatus.PENDING: frozenset(
            {ApplicationStatus.PENDING, ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}
        ),
    },
    TransitionActor.APPLICANT: {
        ApplicationStatus.PENDING: frozenset({ApplicationStatus.WITHDRAWN}),
    },
}


def can_transition(
    current: ApplicationStatus,
    new: ApplicationStatus,
    actor: TransitionActor,
) -> bool:
    """Check whether ``actor`` may move an application from ``current`` to ``new``."""
    return new in VALID_STATUS_TRANSITIONS[actor].get(current, frozenset())


class OpportunityApplication(BaseModel):
    """
    A student's application to one opportunity.

    A student applies to a given opportunity at most once.
    """

    __tablename__ = "opportunity_applications"
    __table_args__ = (
        UniqueConstraint("opportunity_id", "student_id", name="uq_application_opportunity_student"),
    )

    opportunity_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("opportunities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[ApplicationStatus] = mapped_column(
        pg_enum(ApplicationStatus, "application_status"),
        nullable=False,
        default=ApplicationStatus.PENDING,
        index=True,
    )
    application_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Review
    reviewed_by: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Submitted by the student
    cover_letter: Mapped[str | None] = mapped_column(Text, nullable=True)
    gpa: Mapped[float | None] = mapped_column(Float, nullable=True)
    expected_graduation: Mapped[str | None] = mapped_column(String(50), nullable=True)
    relevant_courses: Mapped[str | None] = mapped_column(Text, nullable=True)
    skills: Mapped[str | None] = mapped_column(Text, nullable=True)
    experience_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<OpportunityApplication(id={self.id}, status={self.status.value})>"
