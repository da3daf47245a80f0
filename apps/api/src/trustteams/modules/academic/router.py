"""
Academic Leader Router

All endpoints require the academic_leader or admin role.

Endpoints:
- GET /academic/students - Students of the caller's institution
- DELETE /academic/students/{id} - Delete a student of the caller's institution
- GET /academic/opportunities - The caller's own postings
- POST /academic/opportunities - Post an opportunity and notify students
"""

import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.core.auth import require_roles
from trustteams.core.database import get_db
from trustteams.modules.academic import service
from trustteams.modules.opportunities import service as opportunity_service
from trustteams.modules.opportunities.notifications import broadcast_new_opportunity
from trustteams.modules.opportunities.schemas import (
    MessageResponse,
    OpportunityCollectionResponse,
    OpportunityMutationResponse,
    OpportunityWrite,
)
from trustteams.modules.shared import ServiceError, internal_error, raise_http_error
from trustteams.modules.users.models import User, UserRole
from trustteams.modules.users.schemas import UserListResponse, UserSummary

logger = logging.getLogger(__name__)

router = APIRouter()

require_academic = require_roles(UserRole.ACADEMIC_LEADER, UserRole.ADMIN)


@router.get("/students", response_model=UserListResponse, summary="List Institution Students")
async def list_students(
    leader: User = Depends(require_academic),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    try:
        students = await service.list_students(db, leader)
        return UserListResponse(users=[UserSummary.model_validate(s) for s in students])
    except Exception as e:
        logger.exception(f"Unexpected error listing students: {e}")
        raise internal_error() from e


@router.delete("/students/{student_id}", response_model=MessageResponse, summary="Delete Student")
async def delete_student(
    student_id: UUID,
    leader: User = Depends(require_academic),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        await service.delete_student(db, leader, str(student_id))
        return MessageResponse(message="Student deleted")
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error deleting student {student_id}: {e}")
        raise internal_error() from e


@router.get(
    "/opportunities",
    response_model=OpportunityCollectionResponse,
    summary="List Own Opportunities",
)
async def list_opportunities(
    leader: User = Depends(require_academic),
    db: AsyncSession = Depends(get_db),
) -> OpportunityCollectionResponse:
    try:
        opportunities = await opportunity_service.list_by_poster(db, leader.id)
        return OpportunityCollectionResponse(opportunities=opportunities)
    except Exception as e:
        logger.exception(f"Unexpected error listing opportunities of {leader.id}: {e}")
        raise internal_error() from e


@router.post(
    "/opportunities",
    response_model=OpportunityMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post Opportunity",
)
async def create_opportunity(
    data: OpportunityWrite,
    background_tasks: BackgroundTasks,
    leader: User = Depends(require_academic),
    db: AsyncSession = Depends(get_db),
) -> OpportunityMutationResponse:
    """Same as POST /opportunities, including the student notification."""
    try:
        opportunity = await opportunity_service.create_opportunity(db, leader, data)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error creating opportunity: {e}")
        raise internal_error() from e

    background_tasks.add_task(broadcast_new_opportunity, opportunity.id)
    return OpportunityMutationResponse(
        message="Opportunity created successfully",
        opportunity=opportunity,
    )
