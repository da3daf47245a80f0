"""
Applications Router

Endpoints:
- POST /applications/apply - Apply to an opportunity (students)
- GET /applications/opportunity/{id} - Applicants of one opportunity (poster, university admin)
- GET /applications/student/{id} - Applications of one student
- PUT /applications/{id}/status - Review an application
- PUT /applications/{id}/withdraw - Withdraw a pending application (applicant)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.core.auth import get_current_user
from trustteams.core.database import get_db
from trustteams.modules.applications import service
from trustteams.modules.applications.schemas import (
    ApplyRequest,
    ApplyResponse,
    OpportunityApplicationsResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
    StudentApplicationsResponse,
    WithdrawResponse,
)
from trustteams.modules.shared import ServiceError, internal_error, raise_http_error
from trustteams.modules.users.models import User

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/apply",
    response_model=ApplyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to Opportunity",
)
async def apply(
    data: ApplyRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApplyResponse:
    """
    Submit an application to an open opportunity.

    A student can apply to each opportunity once. A confirmation email is
    sent afterwards; its failure doesn't affect the response.
    """
    try:
        return await service.apply(db, user, data)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error submitting application: {e}")
        raise internal_error() from e


@router.get(
    "/opportunity/{opportunity_id}",
    response_model=OpportunityApplicationsResponse,
    summary="List Applications for Opportunity",
)
async def list_for_opportunity(
    opportunity_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OpportunityApplicationsResponse:
    try:
        return await service.list_for_opportunity(db, str(opportunity_id), user)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error listing applications of {opportunity_id}: {e}")
        raise internal_error() from e


@router.get(
    "/student/{student_id}",
    response_model=StudentApplicationsResponse,
    summary="List Applications of Student",
)
async def list_for_student(
    student_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> StudentApplicationsResponse:
    """
    Students see their own applications; academic leaders and university
    admins see those of students at their university.
    """
    try:
        applications = await service.list_for_student(db, str(student_id), user)
        return StudentApplicationsResponse(applications=applications)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error listing applications of student {student_id}: {e}")
        raise internal_error() from e


@router.put(
    "/{application_id}/status",
    response_model=StatusUpdateResponse,
    summary="Update Application Status",
)
async def update_status(
    application_id: UUID,
    data: StatusUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> StatusUpdateResponse:
    """
    Approve or reject a pending application.

    The applicant is emailed on approval or rejection. The response is 200
    whether or not the email could be delivered.
    """
    try:
        return await service.update_status(
            db,
            str(application_id),
            data.status,
            data.review_notes,
            user,
        )
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error updating application {application_id}: {e}")
        raise internal_error() from e


@router.put(
    "/{application_id}/withdraw",
    response_model=WithdrawResponse,
    summary="Withdraw Application",
)
async def withdraw(
    application_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> WithdrawResponse:
    try:
        return await service.withdraw(db, str(application_id), user)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error withdrawing application {application_id}: {e}")
        raise internal_error() from e
