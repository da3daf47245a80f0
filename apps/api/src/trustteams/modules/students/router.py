"""
Student Router

Endpoints:
- GET /student/profile - The caller's CV (created empty on first read)
- PUT /student/profile - Update the caller's CV
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.core.auth import require_roles
from trustteams.core.database import get_db
from trustteams.modules.shared import ServiceError, internal_error, raise_http_error
from trustteams.modules.students import service
from trustteams.modules.students.schemas import (
    StudentProfileEnvelope,
    StudentProfileUpdate,
    StudentProfileUpdateResponse,
)
from trustteams.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)

router = APIRouter()

require_student = require_roles(UserRole.STUDENT)


@router.get("/profile", response_model=StudentProfileEnvelope, summary="Get Student Profile")
async def get_profile(
    user: User = Depends(require_student),
    db: AsyncSession = Depends(get_db),
) -> StudentProfileEnvelope:
    try:
        profile = await service.get_or_create_profile(db, user)
        return StudentProfileEnvelope(profile=profile)
    except Exception as e:
        logger.exception(f"Unexpected error loading student profile: {e}")
        raise internal_error() from e


@router.put(
    "/profile",
    response_model=StudentProfileUpdateResponse,
    summary="Update Student Profile",
)
async def update_profile(
    data: StudentProfileUpdate,
    user: User = Depends(require_student),
    db: AsyncSession = Depends(get_db),
) -> StudentProfileUpdateResponse:
    """
    Update links, summary and CV sections.

    Omitted fields keep their stored value. A section that is sent
    (`skills`, `experiences`, `education`, `projects`) replaces the stored list.
    """
    try:
        profile = await service.update_profile(db, user, data)
        return StudentProfileUpdateResponse(message="Profile updated", profile=profile)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error updating student profile: {e}")
        raise internal_error() from e
