"""
Student Profile Service Layer

A profile is created empty the first time its owner reads it. Writes
change only the fields present in the request; the user's name may be
updated in the same transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.modules.shared import ServiceError
from trustteams.modules.students import repository
from trustteams.modules.students.models import StudentProfile
from trustteams.modules.students.schemas import StudentProfileResponse, StudentProfileUpdate
from trustteams.modules.users.models import User, UserRole
from trustteams.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

LINK_FIELDS = ("github_url", "linkedin_url", "website_url", "resume_url", "summary")
SECTION_FIELDS = ("skills", "experiences", "education", "projects")


class StudentProfileError(ServiceError):
    """Base exception for student profile errors."""


class StudentNotFoundError(StudentProfileError):
    def __init__(self):
        super().__init__(
            message="Student not found",
            error_code="STUDENT_NOT_FOUND",
            status_code=404,
        )


def to_response(user: User, profile: StudentProfile | None) -> StudentProfileResponse:
    """Combine a user and their (possibly missing) profile."""
    response = StudentProfileResponse(
        user_id=user.id,
        name=user.name,
        email=user.email,
        institute_name=user.institute_name,
        university_id=user.university_id,
    )
    if profile is None:
        return response

    for field in LINK_FIELDS:
        setattr(response, field, getattr(profile, field) or "")
    for field in SECTION_FIELDS:
        setattr(response, field, list(getattr(profile, field) or []))
    response.created_at = profile.created_at
    response.updated_at = profile.updated_at
    return response


async def get_or_create_profile(db: AsyncSession, user: User) -> StudentProfileResponse:
    """Return the caller's profile, creating an empty one on first access."""
    profile = await repository.get_by_user_id(db, user.id)
    if profile is None:
        try:
            profile = await repository.create_empty(db, user.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(f"Created empty student profile for {user.id}")

    return to_response(user, profile)


async def update_profile(
    db: AsyncSession,
    user: User,
    data: StudentProfileUpdate,
) -> StudentProfileResponse:
    """
    Upsert the caller's profile.

    Fields missing from ``data`` are left as they are; sections that are
    present replace the stored section.
    """
    supplied = data.model_fields_set
    profile_fields: dict = {}

    for field in LINK_FIELDS:
        if field in supplied:
            profile_fields[field] = getattr(data, field) or None

    for field in SECTION_FIELDS:
        if field in supplied:
            items = getattr(data, field) or []
            profile_fields[field] = [item.model_dump(mode="json", exclude_none=True) for item in items]

    try:
        profile = await repository.get_by_user_id(db, user.id)
        if profile is None:
            profile = await repository.create_empty(db, user.id)
        if profile_fields:
            profile = await repository.update_fields(db, profile, **profile_fields)
        if "name" in supplied and data.name and data.name != user.name:
            user = await UserRepository.update(db, user, name=data.name)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Updated student profile for {user.id}: {sorted(supplied)}")
    return to_response(user, profile)


async def get_student_profile(db: AsyncSession, student_id: str) -> StudentProfileResponse:
    """
    Read another user's student profile without creating one.

    Raises:
        StudentNotFoundError: If no student has this id
    """
    student = await UserRepository.get_by_id(db, student_id)
    if student is None or student.role != UserRole.STUDENT:
        raise StudentNotFoundError()

    profile = await repository.get_by_user_id(db, student.id)
    return to_response(student, profile)
