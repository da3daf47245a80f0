"""
Universities Router

Public university catalog (used by signup forms) and admin registration.

Endpoints:
- GET /universities - List active universities
- GET /universities/{university_id} - Get one university
- POST /universities - Register a university (admin only)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.core.auth import require_roles
from trustteams.core.database import get_db
from trustteams.modules.shared import ServiceError, internal_error, raise_http_error
from trustteams.modules.universities import service
from trustteams.modules.universities.schemas import (
    UniversityCreate,
    UniversityListResponse,
    UniversityResponse,
)
from trustteams.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=UniversityListResponse, summary="List Universities")
async def list_universities(db: AsyncSession = Depends(get_db)) -> UniversityListResponse:
    universities = await service.list_universities(db)
    return UniversityListResponse(
        universities=[UniversityResponse.model_validate(u) for u in universities]
    )


@router.get("/{university_id}", response_model=UniversityResponse, summary="Get University")
async def get_university(
    university_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> UniversityResponse:
    try:
        university = await service.get_university(db, str(university_id))
        return UniversityResponse.model_validate(university)
    except ServiceError as e:
        raise_http_error(e)


@router.post(
    "",
    response_model=UniversityResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register University",
)
async def create_university(
    data: UniversityCreate,
    _admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> UniversityResponse:
    """Register a university. Only platform admins may do this directly."""
    try:
        university = await service.create_university(db, data)
        return UniversityResponse.model_validate(university)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error registering university: {e}")
        raise internal_error() from e
