"""
ICM Router

All endpoints require the icm, manager, university_admin or admin role.
Posting endpoints only ever show the caller's own postings.

Endpoints:
- GET /icm/profile - Company profile
- PUT /icm/profile - Update account details and company profile
- GET /icm/universities - Partner universities
- GET /icm/stats - Posting and application counts
- GET /icm/opportunities - Own postings
- GET /icm/opportunities/{id} - One own posting
- PUT /icm/opportunities/{id} - Edit an own posting
- GET /icm/opportunities/{id}/applications - Applicants of an own posting
- GET /icm/students/{id}/profile - A student's CV and their applications to own postings
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.core.auth import require_roles
from trustteams.core.database import get_db
from trustteams.modules.applications.schemas import OpportunityApplicationsResponse
from trustteams.modules.icm import service
from trustteams.modules.icm.schemas import (
    IcmProfileResponse,
    IcmProfileUpdate,
    IcmStatsResponse,
    IcmStudentProfileResponse,
)
from trustteams.modules.opportunities.schemas import (
    OpportunityCollectionResponse,
    OpportunityDetailResponse,
    OpportunityMutationResponse,
    OpportunityWrite,
)
from trustteams.modules.shared import ServiceError, internal_error, raise_http_error
from trustteams.modules.universities.schemas import UniversityListResponse, UniversityResponse
from trustteams.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)

router = APIRouter()

require_icm = require_roles(
    UserRole.ICM,
    UserRole.MANAGER,
    UserRole.UNIVERSITY_ADMIN,
    UserRole.ADMIN,
)


@router.get("/profile", response_model=IcmProfileResponse, summary="Get Company Profile")
async def get_profile(
    caller: User = Depends(require_icm),
    db: AsyncSession = Depends(get_db),
) -> IcmProfileResponse:
    try:
        return await service.get_profile(db, caller)
    except Exception as e:
        logger.exception(f"Unexpected error loading ICM profile for {caller.id}: {e}")
        raise internal_error() from e


@router.put("/profile", response_model=IcmProfileResponse, summary="Update Company Profile")
async def update_profile(
    data: IcmProfileUpdate,
    caller: User = Depends(require_icm),
    db: AsyncSession = Depends(get_db),
) -> IcmProfileResponse:
    """
    Update name, email and institute name together with any profile
    sections in the body. Sections left out keep their stored value.
    """
    try:
        return await service.update_profile(db, caller, data)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error updating ICM profile for {caller.id}: {e}")
        raise internal_error() from e


@router.get("/universities", response_model=UniversityListResponse, summary="List Universities")
async def list_universities(
    caller: User = Depends(require_icm),
    db: AsyncSession = Depends(get_db),
) -> UniversityListResponse:
    universities = await service.list_universities(db)
    return UniversityListResponse(
        universities=[UniversityResponse.model_validate(u) for u in universities]
    )


@router.get("/stats", response_model=IcmStatsResponse, summary="ICM Stats")
async def get_stats(
    caller: User = Depends(require_icm),
    db: AsyncSession = Depends(get_db),
) -> IcmStatsResponse:
    """Total postings, total applications to them and postings of the last 7 days."""
    try:
        return await service.get_stats(db, caller)
    except Exception as e:
        logger.exception(f"Unexpected error computing ICM stats for {caller.id}: {e}")
        raise internal_error() from e


@router.get(
    "/opportunities",
    response_model=OpportunityCollectionResponse,
    summary="List Own Opportunities",
)
async def list_opportunities(
    caller: User = Depends(require_icm),
    db: AsyncSession = Depends(get_db),
) -> OpportunityCollectionResponse:
    try:
        opportunities = await service.list_opportunities(db, caller)
        return OpportunityCollectionResponse(opportunities=opportunities)
    except Exception as e:
        logger.exception(f"Unexpected error listing opportunities of {caller.id}: {e}")
        raise internal_error() from e


@router.get(
    "/opportunities/{opportunity_id}",
    response_model=OpportunityDetailResponse,
    summary="Get Own Opportunity",
)
async def get_opportunity(
    opportunity_id: UUID,
    caller: User = Depends(require_icm),
    db: AsyncSession = Depends(get_db),
) -> OpportunityDetailResponse:
    try:
        opportunity = await service.get_own_opportunity(db, caller, str(opportunity_id))
        return OpportunityDetailResponse(opportunity=opportunity)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error loading opportunity {opportunity_id}: {e}")
        raise internal_error() from e


@router.put(
    "/opportunities/{opportunity_id}",
    response_model=OpportunityMutationResponse,
    summary="Update Own Opportunity",
)
async def update_opportunity(
    opportunity_id: UUID,
    data: OpportunityWrite,
    caller: User = Depends(require_icm),
    db: AsyncSession = Depends(get_db),
) -> OpportunityMutationResponse:
    try:
        opportunity = await service.update_own_opportunity(db, caller, str(opportunity_id), data)
        return OpportunityMutationResponse(
            message="Opportunity updated successfully",
            opportunity=opportunity,
        )
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error updating opportunity {opportunity_id}: {e}")
        raise internal_error() from e


@router.get(
    "/opportunities/{opportunity_id}/applications",
    response_model=OpportunityApplicationsResponse,
    summary="List Applicants",
)
async def list_applications(
    opportunity_id: UUID,
    caller: User = Depends(require_icm),
    db: AsyncSession = Depends(get_db),
) -> OpportunityApplicationsResponse:
    try:
        return await service.list_applications(db, caller, str(opportunity_id))
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error listing applications for {opportunity_id}: {e}")
        raise internal_error() from e


@router.get(
    "/students/{student_id}/profile",
    response_model=IcmStudentProfileResponse,
    summary="Get Applicant Profile",
)
async def get_student_profile(
    student_id: UUID,
    caller: User = Depends(require_icm),
    db: AsyncSession = Depends(get_db),
) -> IcmStudentProfileResponse:
    try:
        return await service.get_student_profile(db, caller, str(student_id))
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error loading student {student_id} for {caller.id}: {e}")
        raise internal_error() from e
