"""
Opportunity Models

Opportunity postings and their append-only audit trail.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from trustteams.modules.shared import BaseModel, pg_enum


class OpportunityType(str, Enum):
    INTERNSHIP = "internship"
    JOB = "job"
    RESEARCH = "research"
    RESEARCH_PAPER = "research_paper"
    PROJECT = "project"
    OTHER = "other"


class OpportunityStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    AUTO_CLOSE = "AUTO_CLOSE"


class Opportunity(BaseModel):
    """
    A posted opportunity.

    Status corrects itself: an open opportunity whose closing_date has passed
    is closed (and audited) the next time it is read. Rows are never hard
    deleted; deleted_at marks a soft delete.
    """

    __tablename__ = "opportunities"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[OpportunityType] = mapped_column(
        pg_enum(OpportunityType, "opportunity_type"),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[str | None] = mapped_column(Text, nullable=True)
    stipend: Mapped[str | None] = mapped_column(String(100), nullable=True)
    duration: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[OpportunityStatus] = mapped_column(
        pg_enum(OpportunityStatus, "opportunity_status"),
        nullable=False,
        default=OpportunityStatus.OPEN,
        index=True,
    )
    closing_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Deleting the author does not delete their postings
    posted_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Opportunity(id={self.id}, title={self.title}, status={self.status.value})>"

    def is_expired(self, now: datetime) -> bool:
        """True when the posting is still open past its closing date."""
        return (
            self.status == OpportunityStatus.OPEN
            and self.closing_date is not None
            and self.closing_date < now
        )

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe copy of the editable fields, used for audit entries."""
        return {
            "title": self.title,
            "type": self.type.value if self.type else None,
            "description": self.description,
            "requirements": self.requirements,
            "stipend": self.stipend,
            "duration": self.duration,
            "location": self.location,
            "status": self.status.value if self.status else None,
            "closing_date": self.closing_date.isoformat() if self.closing_date else None,
            "posted_by": self.posted_by,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
        }


class OpportunityAudit(BaseModel):
    """Append-only record of a change to an opportunity."""

    __tablename__ = "opportunity_audit"

    opportunity_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("opportunities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[AuditAction] = mapped_column(
        pg_enum(AuditAction, "opportunity_audit_action"),
        nullable=False,
    )
    # Weak reference to users.id
    changed_by: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    old_values: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    new_values: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    def __repr__(self) -> str:
        return f"<OpportunityAudit(opportunity_id={self.opportunity_id}, action={self.action.value})>"
