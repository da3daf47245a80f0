"""
University Admin Router

All endpoints require the university_admin or admin role. University
admins act on their own university; platform admins pass `university_id`.

Endpoints:
- GET /university/stats - Dashboard counts
- GET /university/students - Students of the university
- GET /university/registration-requests - Pending registration requests
- POST /university/registration-requests/{id}/decision - Approve or reject
- GET /university/users/{id} - One member
- PUT /university/users/{id} - Edit a member
- DELETE /university/users/{id} - Delete a member (not self, not admins)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.core.auth import require_roles
from trustteams.core.database import get_db
from trustteams.modules.opportunities.schemas import MessageResponse
from trustteams.modules.registration_requests import service as registration_service
from trustteams.modules.registration_requests.schemas import (
    DecisionRequest,
    DecisionResponse,
    RegistrationRequestListResponse,
)
from trustteams.modules.shared import ServiceError, internal_error, raise_http_error
from trustteams.modules.university_admin import service
from trustteams.modules.university_admin.schemas import UniversityStatsResponse
from trustteams.modules.users.models import User, UserRole
from trustteams.modules.users.schemas import (
    UserDetail,
    UserListResponse,
    UserSummary,
    UserUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

require_university_admin = require_roles(UserRole.UNIVERSITY_ADMIN, UserRole.ADMIN)


@router.get("/stats", response_model=UniversityStatsResponse, summary="University Stats")
async def get_stats(
    university_id: UUID | None = Query(None),
    caller: User = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> UniversityStatsResponse:
    try:
        scope = service.resolve_university_id(caller, str(university_id) if university_id else None)
        return await service.get_stats(db, scope)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error computing university stats: {e}")
        raise internal_error() from e


@router.get("/students", response_model=UserListResponse, summary="List University Students")
async def list_students(
    university_id: UUID | None = Query(None),
    caller: User = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    try:
        scope = service.resolve_university_id(caller, str(university_id) if university_id else None)
        students = await service.list_students(db, scope)
        return UserListResponse(users=[UserSummary.model_validate(s) for s in students])
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error listing university students: {e}")
        raise internal_error() from e


@router.get(
    "/registration-requests",
    response_model=RegistrationRequestListResponse,
    summary="List Registration Requests",
)
async def list_registration_requests(
    university_id: UUID | None = Query(None),
    caller: User = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> RegistrationRequestListResponse:
    """Pending student and academic leader registrations, oldest first."""
    try:
        scope = service.resolve_university_id(caller, str(university_id) if university_id else None)
        requests = await registration_service.list_pending(db, scope)
        return RegistrationRequestListResponse(requests=requests)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error listing registration requests: {e}")
        raise internal_error() from e


@router.post(
    "/registration-requests/{request_id}/decision",
    response_model=DecisionResponse,
    summary="Decide Registration Request",
)
async def decide_registration_request(
    request_id: UUID,
    data: DecisionRequest,
    caller: User = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> DecisionResponse:
    """
    Approve or reject a registration.

    Approval activates the account; the user can log in once their email
    is verified too.
    """
    try:
        return await registration_service.decide(
            db,
            str(request_id),
            data.action,
            caller,
            data.rejection_reason,
        )
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error deciding registration request {request_id}: {e}")
        raise internal_error() from e


@router.get("/users/{user_id}", response_model=UserDetail, summary="Get Member")
async def get_user(
    user_id: UUID,
    university_id: UUID | None = Query(None),
    caller: User = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> UserDetail:
    try:
        scope = service.resolve_university_id(caller, str(university_id) if university_id else None)
        user = await service.get_user(db, caller, str(user_id), scope)
        return UserDetail.model_validate(user)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error loading user {user_id}: {e}")
        raise internal_error() from e


@router.put("/users/{user_id}", response_model=UserDetail, summary="Update Member")
async def update_user(
    user_id: UUID,
    data: UserUpdateRequest,
    university_id: UUID | None = Query(None),
    caller: User = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> UserDetail:
    try:
        scope = service.resolve_university_id(caller, str(university_id) if university_id else None)
        user = await service.update_user(db, caller, str(user_id), scope, data)
        return UserDetail.model_validate(user)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error updating user {user_id}: {e}")
        raise internal_error() from e


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="Delete Member")
async def delete_user(
    user_id: UUID,
    university_id: UUID | None = Query(None),
    caller: User = Depends(require_university_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        scope = service.resolve_university_id(caller, str(university_id) if university_id else None)
        await service.delete_user(db, caller, str(user_id), scope)
        return MessageResponse(message="User deleted")
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error deleting user {user_id}: {e}")
        raise internal_error() from e
