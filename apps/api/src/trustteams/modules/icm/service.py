"""
ICM Service Layer

What an industry/company manager sees: their company profile, their own
postings and the people who applied to them.
"""

import logging
from datetime import UTC, datetime, timedelta

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.modules.applications import repository as application_repository
from trustteams.modules.applications import service as applications_service
from trustteams.modules.applications.schemas import OpportunityApplicationsResponse
from trustteams.modules.icm import repository
from trustteams.modules.icm.models import IcmProfile
from trustteams.modules.icm.schemas import (
    CompanySection,
    CultureSection,
    HighlightsSection,
    IcmProfileResponse,
    IcmProfileUpdate,
    IcmStatsResponse,
    IcmStudentProfileResponse,
    PeopleSection,
    RecruitmentSection,
)
from trustteams.modules.opportunities import repository as opportunity_repository
from trustteams.modules.opportunities import service as opportunities_service
from trustteams.modules.opportunities.schemas import OpportunityResponse, OpportunityWrite
from trustteams.modules.shared import ServiceError, ValidationError
from trustteams.modules.students import service as students_service
from trustteams.modules.universities.models import University
from trustteams.modules.universities.repository import UniversityRepository
from trustteams.modules.users.models import User
from trustteams.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

SECTIONS = {
    "company": CompanySection,
    "culture": CultureSection,
    "recruitment": RecruitmentSection,
    "highlights": HighlightsSection,
    "people": PeopleSection,
}

RECENT_ACTIVITY_WINDOW = timedelta(days=7)


class IcmServiceError(ServiceError):
    """Base exception for ICM errors."""


class OwnOpportunityNotFoundError(IcmServiceError):
    def __init__(self):
        super().__init__(
            message="Opportunity not found or access denied",
            error_code="OPPORTUNITY_NOT_FOUND",
            status_code=404,
        )


class EmailTakenError(IcmServiceError):
    def __init__(self):
        super().__init__(
            message="Email is already in use by another account",
            error_code="EMAIL_ALREADY_EXISTS",
            status_code=400,
        )


def to_response(user: User, profile: IcmProfile | None) -> IcmProfileResponse:
    """
    Combine a user with their stored sections.

    Missing sections and keys take their defaults; an empty company
    contact email falls back to the account email.
    """
    sections = {
        key: model.model_validate(getattr(profile, key, None) or {})
        for key, model in SECTIONS.items()
    }
    if not sections["company"].contact_email:
        sections["company"].contact_email = user.email

    return IcmProfileResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        approval_status=user.approval_status,
        is_active=user.is_active,
        university_id=user.university_id,
        institute_name=user.institute_name,
        last_login=user.last_login,
        created_at=user.created_at,
        updated_at=user.updated_at,
        **sections,
    )


async def get_profile(db: AsyncSession, user: User) -> IcmProfileResponse:
    profile = await repository.get_by_user_id(db, user.id)
    return to_response(user, profile)


async def update_profile(
    db: AsyncSession,
    user: User,
    data: IcmProfileUpdate,
) -> IcmProfileResponse:
    """
    Update account fields and profile sections in one transaction.

    Raises:
        ValidationError: If name or email is missing or the email is malformed
        EmailTakenError: If the email belongs to another account
    """
    name = data.name.strip()
    email = data.email.strip()
    if not name or not email:
        raise ValidationError("Name and email are required")
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError("Invalid email address") from e

    if email != user.email and await UserRepository.email_exists(
        db, email, exclude_user_id=user.id
    ):
        raise EmailTakenError()

    sections = {
        key: getattr(data, key).model_dump(mode="json")
        for key in SECTIONS
        if getattr(data, key) is not None
    }

    try:
        user = await UserRepository.update(
            db,
            user,
            name=name,
            email=email,
            institute_name=data.institute_name or None,
        )
        profile = await repository.get_by_user_id(db, user.id)
        if profile is None:
            profile = await repository.create(db, user.id, **sections)
        elif sections:
            profile = await repository.update_fields(db, profile, **sections)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"ICM profile updated for {user.id}: {sorted(sections)}")
    return to_response(user, profile)


async def list_universities(db: AsyncSession) -> list[University]:
    return await UniversityRepository.list_active(db)


async def list_opportunities(db: AsyncSession, caller: User) -> list[OpportunityResponse]:
    return await opportunities_service.list_by_poster(db, caller.id)


async def get_own_opportunity(
    db: AsyncSession,
    caller: User,
    opportunity_id: str,
) -> OpportunityResponse:
    """
    Raises:
        OwnOpportunityNotFoundError: If it doesn't exist or someone else posted it
    """
    try:
        opportunity = await opportunities_service.get_opportunity(db, opportunity_id)
    except opportunities_service.OpportunityNotFoundError:
        raise OwnOpportunityNotFoundError() from None

    if opportunity.posted_by != caller.id:
        raise OwnOpportunityNotFoundError()
    return opportunity


async def update_own_opportunity(
    db: AsyncSession,
    caller: User,
    opportunity_id: str,
    data: OpportunityWrite,
) -> OpportunityResponse:
    return await opportunities_service.update_opportunity(
        db, opportunity_id, caller, data, require_owner=True
    )


async def list_applications(
    db: AsyncSession,
    caller: User,
    opportunity_id: str,
) -> OpportunityApplicationsResponse:
    opportunity = await opportunity_repository.get_by_id(db, opportunity_id)
    if opportunity is None or opportunity.posted_by != caller.id:
        raise OwnOpportunityNotFoundError()
    return await applications_service.list_for_opportunity(db, opportunity_id, caller)


async def get_student_profile(
    db: AsyncSession,
    caller: User,
    student_id: str,
) -> IcmStudentProfileResponse:
    """A student's profile with only the applications made to the caller's postings."""
    student = await students_service.get_student_profile(db, student_id)
    applications = await applications_service.list_for_student(
        db, student_id, caller, poster_id=caller.id
    )
    return IcmStudentProfileResponse(student=student, applications=applications)


async def get_stats(db: AsyncSession, caller: User) -> IcmStatsResponse:
    since = datetime.now(UTC) - RECENT_ACTIVITY_WINDOW
    return IcmStatsResponse(
        total_opportunities=await opportunity_repository.count_by_poster(db, caller.id),
        total_applications=await application_repository.count_for_posters(db, [caller.id]),
        recent_activity=await opportunity_repository.count_by_poster(db, caller.id, since=since),
    )
