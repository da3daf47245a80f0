"""
Opportunities Router

Public catalog reads plus role-gated writes.

Endpoints:
- GET /opportunities - Search, filter, sort and paginate
- POST /opportunities - Post an opportunity (academic leader, ICM, manager,
  university admin, admin) and notify students
- POST /opportunities/auto-close-expired - Close expired postings (for schedulers)
- GET /opportunities/{id} - Get one opportunity
- PUT /opportunities/{id} - Replace an opportunity (poster or admin)
- DELETE /opportunities/{id} - Soft delete (admin only)
- GET /opportunities/{id}/audit - Audit trail, newest first
"""

import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.core.auth import get_current_user, require_roles
from trustteams.core.database import get_db
from trustteams.modules.opportunities import service
from trustteams.modules.opportunities.notifications import broadcast_new_opportunity
from trustteams.modules.opportunities.schemas import (
    AuditTrailResponse,
    AutoCloseResponse,
    MessageResponse,
    OpportunityDetailResponse,
    OpportunityListResponse,
    OpportunityMutationResponse,
    OpportunityWrite,
)
from trustteams.modules.shared import ServiceError, internal_error, raise_http_error
from trustteams.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=OpportunityListResponse, summary="List Opportunities")
async def list_opportunities(
    search: str | None = Query(None, description="Matches title or description"),
    status_filter: str | None = Query(None, alias="status"),
    opportunity_type: str | None = Query(None, alias="type"),
    location: str | None = Query(None),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> OpportunityListResponse:
    """
    Search non-deleted opportunities.

    `sortBy` accepts created_at, title, closing_date, status and type.
    Expired postings in the result are closed before the response is built.
    """
    try:
        return await service.list_opportunities(
            db,
            search=search,
            status=status_filter,
            opportunity_type=opportunity_type,
            location=location,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error listing opportunities: {e}")
        raise internal_error() from e


@router.post(
    "",
    response_model=OpportunityMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Opportunity",
)
async def create_opportunity(
    data: OpportunityWrite,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OpportunityMutationResponse:
    """
    Post an opportunity.

    Active, verified students are emailed in the background after the
    response is sent; email failures never affect this call.
    """
    try:
        opportunity = await service.create_opportunity(db, user, data)
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


@router.post(
    "/auto-close-expired",
    response_model=AutoCloseResponse,
    summary="Close Expired Opportunities",
)
async def auto_close_expired(db: AsyncSession = Depends(get_db)) -> AutoCloseResponse:
    """Close every open opportunity past its closing date. Safe to call repeatedly."""
    try:
        return await service.auto_close_expired(db)
    except Exception as e:
        logger.exception(f"Unexpected error auto-closing opportunities: {e}")
        raise internal_error() from e


@router.get(
    "/{opportunity_id}",
    response_model=OpportunityDetailResponse,
    summary="Get Opportunity",
)
async def get_opportunity(
    opportunity_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> OpportunityDetailResponse:
    try:
        opportunity = await service.get_opportunity(db, str(opportunity_id))
        return OpportunityDetailResponse(opportunity=opportunity)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error fetching opportunity {opportunity_id}: {e}")
        raise internal_error() from e


@router.put(
    "/{opportunity_id}",
    response_model=OpportunityMutationResponse,
    summary="Update Opportunity",
)
async def update_opportunity(
    opportunity_id: UUID,
    data: OpportunityWrite,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OpportunityMutationResponse:
    """Replace every editable field. Only the poster or an admin may do this."""
    try:
        opportunity = await service.update_opportunity(db, str(opportunity_id), user, data)
        return OpportunityMutationResponse(
            message="Opportunity updated successfully",
            opportunity=opportunity,
        )
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error updating opportunity {opportunity_id}: {e}")
        raise internal_error() from e


@router.delete(
    "/{opportunity_id}",
    response_model=MessageResponse,
    summary="Delete Opportunity",
    description="""
Soft delete an opportunity. **Platform admins only**: posters cannot delete
their own postings. The row is kept for its audit trail.
""",
)
async def delete_opportunity(
    opportunity_id: UUID,
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        await service.delete_opportunity(db, str(opportunity_id), admin)
        return MessageResponse(message="Opportunity deleted successfully")
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error deleting opportunity {opportunity_id}: {e}")
        raise internal_error() from e


@router.get(
    "/{opportunity_id}/audit",
    response_model=AuditTrailResponse,
    summary="Opportunity Audit Trail",
)
async def get_audit_trail(
    opportunity_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> AuditTrailResponse:
    try:
        entries = await service.get_audit_trail(db, str(opportunity_id))
        return AuditTrailResponse(audit_trail=entries)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error fetching audit trail for {opportunity_id}: {e}")
        raise internal_error() from e
