"""
Academic Leader Service Layer

Views for academic leaders over the students of their institution and
their own postings.

A leader's institution is their university_id. Accounts without one fall
back to matching the email domain; that match is approximate and never
used when a university is set.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.modules.shared import ForbiddenError, ServiceError
from trustteams.modules.users.models import User, UserRole
from trustteams.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class AcademicServiceError(ServiceError):
    """Base exception for academic view errors."""


class StudentNotFoundError(AcademicServiceError):
    def __init__(self):
        super().__init__(
            message="Student not found",
            error_code="STUDENT_NOT_FOUND",
            status_code=404,
        )


def same_institution(leader: User, student: User) -> bool:
    """Check whether a student belongs to the leader's institution."""
    if leader.university_id:
        return student.university_id == leader.university_id
    return bool(leader.email_domain) and student.email_domain == leader.email_domain


async def list_students(db: AsyncSession, leader: User) -> list[User]:
    """Students of the leader's institution, newest first."""
    if leader.university_id:
        return await UserRepository.list_by_university(db, leader.university_id, role=UserRole.STUDENT)

    logger.info(f"Leader {leader.id} has no university, matching students by email domain")
    if not leader.email_domain:
        return []
    return await UserRepository.list_by_email_domain(db, leader.email_domain, role=UserRole.STUDENT)


async def delete_student(db: AsyncSession, leader: User, student_id: str) -> None:
    """
    Delete a student account of the leader's institution.

    Dependent rows (applications, profile, registration request) go with it.

    Raises:
        StudentNotFoundError: If no student has this id
        ForbiddenError: If the student belongs to another institution
    """
    student = await UserRepository.get_by_id(db, student_id)
    if student is None or student.role != UserRole.STUDENT:
        raise StudentNotFoundError()

    if leader.role != UserRole.ADMIN and not same_institution(leader, student):
        logger.warning(f"Leader {leader.id} tried to delete student {student_id} of another institute")
        raise ForbiddenError("Cannot delete student from another institute")

    try:
        await UserRepository.delete(db, student.id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Student {student_id} deleted by {leader.id}")
