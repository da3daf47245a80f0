"""
Universities Service Layer

Business logic for the university catalog.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.modules.shared import ServiceError
from trustteams.modules.universities.models import University
from trustteams.modules.universities.repository import UniversityRepository
from trustteams.modules.universities.schemas import UniversityCreate

logger = logging.getLogger(__name__)


class UniversityServiceError(ServiceError):
    """Base exception for university service errors."""


class UniversityNotFoundError(UniversityServiceError):
    """Raised when a university does not exist."""

    def __init__(self, university_id: str | None = None):
        message = f"University {university_id} not found" if university_id else "University not found"
        super().__init__(message=message, error_code="UNIVERSITY_NOT_FOUND", status_code=404)


class UniversityExistsError(UniversityServiceError):
    """Raised when a university name or domain is already registered."""

    def __init__(self):
        super().__init__(
            message="A university with this name or domain already exists",
            error_code="UNIVERSITY_EXISTS",
            status_code=409,
        )


async def list_universities(db: AsyncSession) -> list[University]:
    return await UniversityRepository.list_active(db)


async def get_university(db: AsyncSession, university_id: str) -> University:
    """
    Get a university by ID.

    Raises:
        UniversityNotFoundError: If the university doesn't exist
    """
    university = await UniversityRepository.get_by_id(db, university_id)
    if university is None:
        raise UniversityNotFoundError(university_id)
    return university


async def create_university(db: AsyncSession, data: UniversityCreate) -> University:
    """
    Register a new university and commit.

    Raises:
        UniversityExistsError: If the name or domain is taken
    """
    if await UniversityRepository.get_by_name_or_domain(db, data.name, data.domain):
        raise UniversityExistsError()

    try:
        university = await UniversityRepository.create(db, **data.model_dump())
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"University registered: {university.id} ({university.domain})")
    return university
