"""
ICM Profile Model

Company profile of an industry/company manager, one row per user.
"""

from sqlalchemy import ForeignKey
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from trustteams.modules.shared import BaseModel


class IcmProfile(BaseModel):
    """
    Company profile document.

    Each section is stored as a JSON object; a section sent in an update
    replaces the stored one.
    """

    __tablename__ = "icm_profiles"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    company: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    culture: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    recruitment: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    highlights: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    people: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<IcmProfile(user_id={self.user_id})>"
