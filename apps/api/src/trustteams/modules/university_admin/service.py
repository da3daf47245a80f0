"""
University Admin Service Layer

Views a university administrator has over their own institution:
dashboard counts, students, the registration request inbox and user
management.

Platform admins may act on any university by naming it explicitly.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.modules.applications import repository as application_repository
from trustteams.modules.opportunities import repository as opportunity_repository
from trustteams.modules.shared import ForbiddenError, ServiceError, ValidationError
from trustteams.modules.university_admin.schemas import ApprovalCounts, UniversityStatsResponse
from trustteams.modules.users.models import User, UserRole
from trustteams.modules.users.repository import UserRepository
from trustteams.modules.users.schemas import UserUpdateRequest

logger = logging.getLogger(__name__)

# Accounts a university admin can never delete
PROTECTED_ROLES = frozenset({UserRole.ADMIN, UserRole.UNIVERSITY_ADMIN})


class UniversityAdminError(ServiceError):
    """Base exception for university admin errors."""


class UserNotFoundError(UniversityAdminError):
    def __init__(self):
        super().__init__(
            message="User not found",
            error_code="USER_NOT_FOUND",
            status_code=404,
        )


class EmailTakenError(UniversityAdminError):
    def __init__(self):
        super().__init__(
            message="Email is already taken",
            error_code="EMAIL_ALREADY_EXISTS",
            status_code=400,
        )


def resolve_university_id(caller: User, requested: str | None = None) -> str:
    """
    Work out which university the caller is acting on.

    University admins always act on their own university. Platform admins
    use ``requested``, or their own university when they have one.

    Raises:
        ForbiddenError: If a university admin asks for another university,
            or has no university
        ValidationError: If a platform admin names no university
    """
    if caller.role == UserRole.ADMIN:
        university_id = requested or caller.university_id
        if not university_id:
            raise ValidationError("university_id is required")
        return university_id

    if not caller.university_id:
        raise ForbiddenError("Your account is not linked to a university")
    if requested and requested != caller.university_id:
        raise ForbiddenError("You can only manage your own university")
    return caller.university_id


async def _get_member(db: AsyncSession, caller: User, user_id: str, university_id: str) -> User:
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise UserNotFoundError()
    if caller.role != UserRole.ADMIN and user.university_id != university_id:
        raise ForbiddenError("You can only manage users of your own university")
    return user


async def get_stats(db: AsyncSession, university_id: str) -> UniversityStatsResponse:
    """Students and academic leaders by approval status, plus activity of the university's members."""
    students = await UserRepository.count_by_approval_status(db, university_id, UserRole.STUDENT)
    leaders = await UserRepository.count_by_approval_status(
        db, university_id, UserRole.ACADEMIC_LEADER
    )

    member_ids = await UserRepository.list_ids_by_university(db, university_id)
    opportunities = await opportunity_repository.count_by_posters(db, member_ids)
    applications = await application_repository.count_for_posters(db, member_ids)

    return UniversityStatsResponse(
        university_id=university_id,
        students=ApprovalCounts(**students),
        academic_leaders=ApprovalCounts(**leaders),
        opportunities=opportunities,
        applications=applications,
    )


async def list_students(db: AsyncSession, university_id: str) -> list[User]:
    return await UserRepository.list_by_university(db, university_id, role=UserRole.STUDENT)


async def get_user(db: AsyncSession, caller: User, user_id: str, university_id: str) -> User:
    """
    Raises:
        UserNotFoundError: If the user doesn't exist
        ForbiddenError: If the user belongs to another university
    """
    return await _get_member(db, caller, user_id, university_id)


async def update_user(
    db: AsyncSession,
    caller: User,
    user_id: str,
    university_id: str,
    data: UserUpdateRequest,
) -> User:
    """
    Update name, email, institute or active flag of a university member.

    Raises:
        UserNotFoundError: If the user doesn't exist
        ForbiddenError: If the user belongs to another university
        EmailTakenError: If the new email belongs to someone else
    """
    user = await _get_member(db, caller, user_id, university_id)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in changes:
        changes["email"] = str(changes["email"])
        if changes["email"] != user.email and await UserRepository.email_exists(
            db, changes["email"], exclude_user_id=user.id
        ):
            raise EmailTakenError()

    if not changes:
        return user

    try:
        user = await UserRepository.update(db, user, **changes)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"User {user.id} updated by {caller.id}: {sorted(changes)}")
    return user


async def delete_user(db: AsyncSession, caller: User, user_id: str, university_id: str) -> None:
    """
    Hard-delete a member of the university.

    The registration request, profile and applications of the user are
    removed with it.

    Raises:
        ValidationError: If the caller tries to delete themselves
        ForbiddenError: If the target is an administrator or in another university
        UserNotFoundError: If the user doesn't exist
    """
    if user_id == caller.id:
        raise ValidationError("You cannot delete your own account")

    user = await _get_member(db, caller, user_id, university_id)

    if user.role in PROTECTED_ROLES:
        raise ForbiddenError("Administrator accounts cannot be deleted here")

    try:
        await UserRepository.delete(db, user.id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"User {user_id} deleted by {caller.id}")
