"""
Shared ORM base model.

Every table gets a UUID primary key and audit timestamps.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.postgresql import ENUM, UUID
from sqlalchemy.orm import Mapped, mapped_column

from trustteams.core.database import Base


class BaseModel(Base):
    """Abstract base with id, created_at and updated_at columns."""

    __abstract__ = True

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


def pg_enum(enum_cls: type[enum.Enum], name: str) -> ENUM:
    """
    Postgres ENUM column type that stores the enum *values* (lower case).

    SQLAlchemy stores member names by default, which makes raw SQL and
    migrations disagree with the API representation.
    """
    return ENUM(
        enum_cls,
        name=name,
        create_type=True,
        values_callable=lambda members: [member.value for member in members],
    )
