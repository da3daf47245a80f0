"""
University Models

Institutions that students, academic leaders and university admins belong to.
"""

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trustteams.modules.shared import BaseModel


class University(BaseModel):
    """
    University record.

    Created by a platform admin or by the first university_admin who signs up
    for an institution that is not registered yet.
    """

    __tablename__ = "universities"

    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)
    domain: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    established_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<University(id={self.id}, name={self.name}, domain={self.domain})>"
