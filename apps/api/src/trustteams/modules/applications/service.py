"""
Applications Service Layer

Student applications and their review.

State machine:
    pending -> approved | rejected   (reviewer)
    pending -> withdrawn             (applicant)
    approved, rejected, withdrawn    terminal

Emails (confirmation on apply, approved/rejected on review) are sent after
the commit and never undo it.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.core.email import (
    send_application_approved,
    send_application_confirmation,
    send_application_rejected,
)
from trustteams.modules.applications import repository
from trustteams.modules.applications.models import (
    ApplicationStatus,
    OpportunityApplication,
    TransitionActor,
    can_transition,
)
from trustteams.modules.applications.schemas import (
    ApplicantApplication,
    ApplicationResponse,
    ApplyRequest,
    ApplyResponse,
    OpportunityApplicationsResponse,
    OpportunitySummary,
    StatusUpdateResponse,
    StudentApplication,
    WithdrawResponse,
)
from trustteams.modules.opportunities import repository as opportunity_repository
from trustteams.modules.opportunities.models import Opportunity, OpportunityStatus
from trustteams.modules.shared import ForbiddenError, ServiceError
from trustteams.modules.users.models import User, UserRole
from trustteams.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

REVIEWER_ROLES = frozenset(
    {
        UserRole.ACADEMIC_LEADER,
        UserRole.ICM,
        UserRole.MANAGER,
        UserRole.UNIVERSITY_ADMIN,
        UserRole.ADMIN,
    }
)

# Reviewers that may also act on applicants from their own university
UNIVERSITY_REVIEWER_ROLES = frozenset({UserRole.ACADEMIC_LEADER, UserRole.UNIVERSITY_ADMIN})


# ============================================
# Exceptions
# ============================================


class ApplicationServiceError(ServiceError):
    """Base exception for application service errors."""


class ApplicationNotFoundError(ApplicationServiceError):
    def __init__(self):
        super().__init__(
            message="Application not found",
            error_code="APPLICATION_NOT_FOUND",
            status_code=404,
        )


class OpportunityNotFoundError(ApplicationServiceError):
    def __init__(self):
        super().__init__(
            message="Opportunity not found",
            error_code="OPPORTUNITY_NOT_FOUND",
            status_code=404,
        )


class OpportunityClosedError(ApplicationServiceError):
    def __init__(self, message: str = "Opportunity is not open for applications"):
        super().__init__(message=message, error_code="OPPORTUNITY_CLOSED", status_code=400)


class DuplicateApplicationError(ApplicationServiceError):
    def __init__(self):
        super().__init__(
            message="You have already applied to this opportunity",
            error_code="DUPLICATE_APPLICATION",
            status_code=400,
        )


class InvalidStatusError(ApplicationServiceError):
    def __init__(self):
        allowed = ", ".join(s.value for s in ApplicationStatus)
        super().__init__(
            message=f"Invalid status. Must be one of: {allowed}",
            error_code="INVALID_STATUS",
            status_code=400,
        )


class InvalidStatusTransitionError(ApplicationServiceError):
    def __init__(self, message: str):
        super().__init__(message=message, error_code="INVALID_STATUS_TRANSITION", status_code=400)


# ============================================
# Helpers
# ============================================


def parse_status(value: str) -> ApplicationStatus:
    """Convert a requested status to the enum, raising InvalidStatusError."""
    try:
        return ApplicationStatus((value or "").strip().lower())
    except ValueError:
        raise InvalidStatusError() from None


def _application_fields(application: OpportunityApplication) -> dict:
    return ApplicationResponse.model_validate(application).model_dump()


def can_review(reviewer: User, opportunity: Opportunity, applicant: User | None) -> bool:
    """
    Check whether a reviewer may decide an application.

    - admin: any application
    - icm / manager: applications to their own postings
    - academic_leader / university_admin: their own postings, or applicants
      from their own university
    """
    if reviewer.role == UserRole.ADMIN:
        return True
    if reviewer.role not in REVIEWER_ROLES:
        return False
    if opportunity.posted_by == reviewer.id:
        return True
    if reviewer.role in UNIVERSITY_REVIEWER_ROLES:
        return (
            applicant is not None
            and reviewer.university_id is not None
            and applicant.university_id == reviewer.university_id
        )
    return False


async def _notify_reviewed(
    application: OpportunityApplication,
    student: User,
    opportunity: Opportunity,
    reviewer: User,
) -> None:
    """Send the approved/rejected email. Failures are logged only."""
    if application.status == ApplicationStatus.APPROVED:
        sender = send_application_approved
    elif application.status == ApplicationStatus.REJECTED:
        sender = send_application_rejected
    else:
        return

    try:
        sent = await sender(
            to_email=student.email,
            student_name=student.name,
            opportunity_title=opportunity.title,
            reviewer_name=reviewer.name,
            review_notes=application.review_notes,
        )
        if not sent:
            logger.error(f"Failed to send {application.status.value} email for application {application.id}")
    except Exception as e:
        logger.error(f"Exception sending status email for application {application.id}: {e}")


# ============================================
# Operations
# ============================================


async def apply(db: AsyncSession, student: User, data: ApplyRequest) -> ApplyResponse:
    """
    Submit an application.

    Raises:
        ForbiddenError: If the caller isn't a student
        OpportunityNotFoundError: If the opportunity doesn't exist or was deleted
        OpportunityClosedError: If it's closed or past its closing date
        DuplicateApplicationError: If the student already applied
    """
    if student.role != UserRole.STUDENT:
        raise ForbiddenError("Only students can apply to opportunities")

    opportunity_id = str(data.opportunity_id)
    opportunity = await opportunity_repository.get_by_id(db, opportunity_id)
    if opportunity is None:
        raise OpportunityNotFoundError()

    if opportunity.status != OpportunityStatus.OPEN:
        raise OpportunityClosedError()

    if opportunity.closing_date is not None and opportunity.closing_date < datetime.now(UTC):
        raise OpportunityClosedError("Opportunity deadline has passed")

    if await repository.exists(db, opportunity_id, student.id):
        raise DuplicateApplicationError()

    try:
        application = await repository.create(
            db,
            opportunity_id=opportunity_id,
            student_id=student.id,
            status=ApplicationStatus.PENDING,
            cover_letter=data.cover_letter,
            gpa=data.gpa,
            expected_graduation=data.expected_graduation,
            relevant_courses=data.relevant_courses,
            skills=data.skills,
            experience_summary=data.experience_summary,
        )
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent apply for the same pair
        await db.rollback()
        raise DuplicateApplicationError() from None
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Application {application.id} submitted by {student.id} for {opportunity_id}")

    poster = None
    if opportunity.posted_by:
        poster = await UserRepository.get_by_id(db, opportunity.posted_by)
    organization_name = (poster.institute_name or poster.name) if poster else "TrustTeams"

    try:
        sent = await send_application_confirmation(
            to_email=student.email,
            student_name=student.name,
            opportunity_title=opportunity.title,
            organization_name=organization_name,
            application_id=application.id,
        )
        if not sent:
            logger.error(f"Failed to send confirmation for application {application.id}")
    except Exception as e:
        logger.error(f"Exception sending confirmation for application {application.id}: {e}")

    return ApplyResponse(message="Application submitted successfully", application_id=application.id)


async def list_for_opportunity(
    db: AsyncSession,
    opportunity_id: str,
    caller: User,
) -> OpportunityApplicationsResponse:
    """
    Applications to one opportunity with applicant details.

    Only the poster, university admins and platform admins may look.
    """
    opportunity = await opportunity_repository.get_by_id(db, opportunity_id)
    if opportunity is None:
        raise OpportunityNotFoundError()

    if opportunity.posted_by != caller.id and caller.role not in (
        UserRole.UNIVERSITY_ADMIN,
        UserRole.ADMIN,
    ):
        raise ForbiddenError("Not authorized to view applications for this opportunity")

    rows = await repository.list_for_opportunity(db, opportunity_id)
    return OpportunityApplicationsResponse(
        opportunity=OpportunitySummary(id=opportunity.id, title=opportunity.title),
        applications=[
            ApplicantApplication(
                **_application_fields(application),
                student_name=student.name,
                student_email=student.email,
                student_institute_name=student.institute_name,
                student_university_id=student.university_id,
            )
            for application, student in rows
        ],
    )


async def list_for_student(
    db: AsyncSession,
    student_id: str,
    caller: User,
    poster_id: str | None = None,
) -> list[StudentApplication]:
    """
    Applications of one student with opportunity and poster details.

    - students see only their own
    - academic leaders and university admins see students of their university
    - admins see everyone

    Args:
        db: Database session
        student_id: Applicant
        caller: Requesting user
        poster_id: Restrict to one poster's opportunities (ICM view)

    Raises:
        ForbiddenError: If the caller may not view this student's applications
    """
    if poster_id is None:
        await _check_student_visibility(db, student_id, caller)

    rows = await repository.list_for_student(db, student_id, poster_id=poster_id)
    return [
        StudentApplication(
            **_application_fields(application),
            opportunity_title=opportunity.title,
            opportunity_type=opportunity.type,
            opportunity_status=opportunity.status,
            opportunity_description=opportunity.description,
            opportunity_location=opportunity.location,
            opportunity_stipend=opportunity.stipend,
            opportunity_duration=opportunity.duration,
            opportunity_closing_date=opportunity.closing_date,
            posted_by_name=poster_name,
            posted_by_email=poster_email,
        )
        for application, opportunity, poster_name, poster_email in rows
    ]


async def _check_student_visibility(db: AsyncSession, student_id: str, caller: User) -> None:
    if caller.role == UserRole.ADMIN:
        return

    if caller.role == UserRole.STUDENT:
        if caller.id != student_id:
            raise ForbiddenError("Not authorized to view other students' applications")
        return

    if caller.role in UNIVERSITY_REVIEWER_ROLES:
        student = await UserRepository.get_by_id(db, student_id)
        if (
            student is None
            or caller.university_id is None
            or student.university_id != caller.university_id
        ):
            raise ForbiddenError("Not authorized to view this student's applications")
        return

    raise ForbiddenError("Not authorized to view this student's applications")


async def update_status(
    db: AsyncSession,
    application_id: str,
    new_status: str,
    review_notes: str | None,
    reviewer: User,
) -> StatusUpdateResponse:
    """
    Record a reviewer's decision and email the applicant.

    reviewed_by and reviewed_at are always recorded.

    Raises:
        ForbiddenError: If the reviewer's role or relation to the posting doesn't allow it
        ApplicationNotFoundError: If the application doesn't exist
        InvalidStatusError: If new_status is not a known status
        InvalidStatusTransitionError: If the application can't move to new_status
    """
    if reviewer.role not in REVIEWER_ROLES:
        raise ForbiddenError("Not authorized to update application status")

    status = parse_status(new_status)

    application = await repository.get_by_id(db, application_id)
    if application is None:
        raise ApplicationNotFoundError()

    opportunity = await opportunity_repository.get_by_id(
        db, application.opportunity_id, include_deleted=True
    )
    if opportunity is None:
        raise ApplicationNotFoundError()

    student = await UserRepository.get_by_id(db, application.student_id)

    if not can_review(reviewer, opportunity, student):
        logger.warning(f"Reviewer {reviewer.id} not allowed to review application {application_id}")
        raise ForbiddenError("Not authorized to update this application")

    if not can_transition(application.status, status, TransitionActor.REVIEWER):
        raise InvalidStatusTransitionError(
            f"Cannot change a {application.status.value} application to {status.value}"
        )

    try:
        application = await repository.update_fields(
            db,
            application,
            status=status,
            review_notes=review_notes,
            reviewed_by=reviewer.id,
            reviewed_at=datetime.now(UTC),
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Application {application.id} set to {status.value} by {reviewer.id}")

    if student is not None:
        await _notify_reviewed(application, student, opportunity, reviewer)

    return StatusUpdateResponse(
        message="Application status updated successfully",
        application_id=application.id,
        new_status=status,
    )


async def withdraw(db: AsyncSession, application_id: str, student: User) -> WithdrawResponse:
    """
    Withdraw a pending application. No email is sent.

    Raises:
        ForbiddenError: If the caller isn't the applicant
        ApplicationNotFoundError: If the application doesn't exist
        InvalidStatusTransitionError: If the application is no longer pending
    """
    if student.role != UserRole.STUDENT:
        raise ForbiddenError("Only students can withdraw applications")

    application = await repository.get_by_id(db, application_id)
    if application is None:
        raise ApplicationNotFoundError()

    if application.student_id != student.id:
        raise ForbiddenError("Not authorized to withdraw this application")

    if not can_transition(application.status, ApplicationStatus.WITHDRAWN, TransitionActor.APPLICANT):
        raise InvalidStatusTransitionError("Can only withdraw pending applications")

    try:
        await repository.update_fields(db, application, status=ApplicationStatus.WITHDRAWN)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Application {application.id} withdrawn by {student.id}")
    return WithdrawResponse(message="Application withdrawn successfully", application_id=application.id)
