"""
Opportunities Service Layer

Business logic for the opportunity catalog.

Expired postings close themselves: every read that sees an open posting
past its closing date closes it and writes an AUTO_CLOSE audit entry
before returning, so callers never observe a stale "open" status.

Every create, update, delete and auto-close writes exactly one audit entry
in the same transaction as the change itself.
"""

import logging
import math
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.modules.opportunities import repository
from trustteams.modules.opportunities.models import (
    AuditAction,
    Opportunity,
    OpportunityStatus,
    OpportunityType,
)
from trustteams.modules.opportunities.schemas import (
    AuditEntryResponse,
    AutoCloseResponse,
    OpportunityListResponse,
    OpportunityResponse,
    OpportunityWrite,
    Pagination,
)
from trustteams.modules.shared import ForbiddenError, ServiceError, ValidationError
from trustteams.modules.users.models import User, UserRole
from trustteams.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

# Roles allowed to post opportunities; manager is treated as an ICM
POSTER_ROLES = frozenset(
    {
        UserRole.ACADEMIC_LEADER,
        UserRole.ICM,
        UserRole.MANAGER,
        UserRole.UNIVERSITY_ADMIN,
        UserRole.ADMIN,
    }
)

AUTO_CLOSE_OLD_VALUES = {"status": OpportunityStatus.OPEN.value}
AUTO_CLOSE_NEW_VALUES = {"status": OpportunityStatus.CLOSED.value}


# ============================================
# Exceptions
# ============================================


class OpportunityServiceError(ServiceError):
    """Base exception for opportunity service errors."""


class OpportunityNotFoundError(OpportunityServiceError):
    def __init__(self):
        super().__init__(
            message="Opportunity not found",
            error_code="OPPORTUNITY_NOT_FOUND",
            status_code=404,
        )


# ============================================
# Helpers
# ============================================


def build_pagination(total: int, limit: int, offset: int) -> Pagination:
    """Pagination block for list responses. ``pages`` rounds up."""
    pages = math.ceil(total / limit) if limit > 0 else 0
    return Pagination(total=total, limit=limit, offset=offset, pages=pages)


def parse_closing_date(value: str | None) -> datetime | None:
    """
    Parse an ISO 8601 date or datetime.

    Date-only and naive values are taken as UTC.

    Raises:
        ValidationError: If the value is not a valid date
    """
    if value is None or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError("Invalid closing date") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _validated_fields(data: OpportunityWrite) -> dict:
    """Check an opportunity payload and convert it to column values."""
    if not data.title or not data.type or not data.description:
        raise ValidationError("Title, type and description are required")

    try:
        opportunity_type = OpportunityType(data.type.lower())
    except ValueError:
        allowed = ", ".join(t.value for t in OpportunityType)
        raise ValidationError(f"Invalid opportunity type. Must be one of: {allowed}") from None

    try:
        opportunity_status = OpportunityStatus((data.status or OpportunityStatus.OPEN.value).lower())
    except ValueError:
        raise ValidationError("Invalid status. Must be one of: open, closed") from None

    return {
        "title": data.title,
        "type": opportunity_type,
        "description": data.description,
        "requirements": data.requirements or None,
        "stipend": data.stipend or None,
        "duration": data.duration or None,
        "location": data.location or None,
        "status": opportunity_status,
        "closing_date": parse_closing_date(data.closing_date),
        "contact_email": data.contact_email or None,
        "contact_phone": data.contact_phone or None,
    }


def to_response(opportunity: Opportunity, posted_by_name: str | None = None) -> OpportunityResponse:
    response = OpportunityResponse.model_validate(opportunity)
    response.posted_by_name = posted_by_name
    return response


async def _with_poster_names(
    db: AsyncSession,
    opportunities: list[Opportunity],
) -> list[OpportunityResponse]:
    names = await UserRepository.get_names(db, [o.posted_by for o in opportunities])
    return [to_response(o, names.get(o.posted_by)) for o in opportunities]


async def close_if_expired(db: AsyncSession, opportunities: list[Opportunity]) -> list[str]:
    """
    Close every open opportunity in ``opportunities`` whose closing date passed.

    Commits the status change together with one AUTO_CLOSE audit entry per
    closed row. The acting user recorded on the entry is the poster.

    Returns:
        IDs of the opportunities that were closed by this call
    """
    now = datetime.now(UTC)
    expired = {o.id: o for o in opportunities if o.is_expired(now)}
    if not expired:
        return []

    try:
        closed_ids = await repository.close_many(db, list(expired), now)
        for opportunity_id in closed_ids:
            await repository.add_audit(
                db,
                opportunity_id=opportunity_id,
                action=AuditAction.AUTO_CLOSE,
                changed_by=expired[opportunity_id].posted_by,
                old_values=dict(AUTO_CLOSE_OLD_VALUES),
                new_values=dict(AUTO_CLOSE_NEW_VALUES),
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if closed_ids:
        logger.info(f"Auto-closed {len(closed_ids)} expired opportunities on read")
    return closed_ids


# ============================================
# Reads
# ============================================


async def list_opportunities(
    db: AsyncSession,
    *,
    search: str | None = None,
    status: str | None = None,
    opportunity_type: str | None = None,
    location: str | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    limit: int = 10,
    offset: int = 0,
) -> OpportunityListResponse:
    """
    Search the catalog.

    Unknown status or type filters are rejected; an unknown sort column
    falls back to created_at.
    """
    status_filter = None
    if status:
        try:
            status_filter = OpportunityStatus(status.lower())
        except ValueError:
            raise ValidationError("Invalid status filter. Must be one of: open, closed") from None

    type_filter = None
    if opportunity_type:
        try:
            type_filter = OpportunityType(opportunity_type.lower())
        except ValueError:
            raise ValidationError("Invalid type filter") from None

    query = {
        "search": search,
        "status": status_filter,
        "opportunity_type": type_filter,
        "location": location,
        "sort_by": sort_by,
        "sort_order": sort_order,
        "limit": limit,
        "offset": offset,
    }
    opportunities, total = await repository.search(db, **query)

    if await close_if_expired(db, opportunities):
        # Re-run the query so filters on status see the closed rows
        opportunities, total = await repository.search(db, **query)

    return OpportunityListResponse(
        opportunities=await _with_poster_names(db, opportunities),
        pagination=build_pagination(total, limit, offset),
    )


async def get_opportunity(db: AsyncSession, opportunity_id: str) -> OpportunityResponse:
    """
    Get one opportunity, closing it first if it has expired.

    Raises:
        OpportunityNotFoundError: If it doesn't exist or was deleted
    """
    opportunity = await repository.get_by_id(db, opportunity_id)
    if opportunity is None:
        raise OpportunityNotFoundError()

    if await close_if_expired(db, [opportunity]):
        opportunity = await repository.get_by_id(db, opportunity_id)

    names = await UserRepository.get_names(db, [opportunity.posted_by])
    return to_response(opportunity, names.get(opportunity.posted_by))


async def list_by_poster(db: AsyncSession, poster_id: str) -> list[OpportunityResponse]:
    """Postings of one user, newest first, with expiry applied."""
    opportunities = await repository.list_by_poster(db, poster_id)
    if await close_if_expired(db, opportunities):
        opportunities = await repository.list_by_poster(db, poster_id)
    return await _with_poster_names(db, opportunities)


async def get_audit_trail(db: AsyncSession, opportunity_id: str) -> list[AuditEntryResponse]:
    """
    Audit trail of one opportunity, newest first.

    Deleted opportunities keep their trail.
    """
    opportunity = await repository.get_by_id(db, opportunity_id, include_deleted=True)
    if opportunity is None:
        raise OpportunityNotFoundError()

    rows = await repository.get_audit_trail(db, opportunity_id)
    return [
        AuditEntryResponse(
            id=entry.id,
            opportunity_id=entry.opportunity_id,
            action=entry.action,
            changed_by=entry.changed_by,
            changed_by_name=name,
            old_values=entry.old_values,
            new_values=entry.new_values,
            created_at=entry.created_at,
        )
        for entry, name in rows
    ]


# ============================================
# Writes
# ============================================


async def create_opportunity(
    db: AsyncSession,
    poster: User,
    data: OpportunityWrite,
) -> OpportunityResponse:
    """
    Create an opportunity and its CREATE audit entry.

    Student notification is not sent here; the caller schedules
    notifications.broadcast_new_opportunity once this returns.

    Raises:
        ForbiddenError: If the poster's role may not post
        ValidationError: If required fields are missing or invalid
    """
    if poster.role not in POSTER_ROLES:
        raise ForbiddenError("Your role is not allowed to post opportunities")

    fields = _validated_fields(data)

    try:
        opportunity = await repository.create(db, posted_by=poster.id, **fields)
        await repository.add_audit(
            db,
            opportunity_id=opportunity.id,
            action=AuditAction.CREATE,
            changed_by=poster.id,
            new_values=opportunity.snapshot(),
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Opportunity created: {opportunity.id} by {poster.id}")
    return to_response(opportunity, poster.name)


async def update_opportunity(
    db: AsyncSession,
    opportunity_id: str,
    editor: User,
    data: OpportunityWrite,
    require_owner: bool = False,
) -> OpportunityResponse:
    """
    Replace the editable fields of an opportunity.

    Args:
        db: Database session
        opportunity_id: Opportunity to update
        editor: Calling user
        data: New field values (all of them)
        require_owner: Only the poster may edit, admins included

    Raises:
        OpportunityNotFoundError: If it doesn't exist or was deleted
        ForbiddenError: If the editor is neither the poster nor an admin
        ValidationError: If the new values are invalid
    """
    opportunity = await repository.get_by_id(db, opportunity_id)
    if opportunity is None:
        raise OpportunityNotFoundError()

    is_owner = opportunity.posted_by == editor.id
    if not is_owner and (require_owner or editor.role != UserRole.ADMIN):
        logger.warning(f"User {editor.id} tried to edit opportunity {opportunity_id}")
        raise ForbiddenError("You can only edit your own opportunities")

    fields = _validated_fields(data)
    old_values = opportunity.snapshot()

    try:
        opportunity = await repository.update_fields(db, opportunity, **fields)
        await repository.add_audit(
            db,
            opportunity_id=opportunity.id,
            action=AuditAction.UPDATE,
            changed_by=editor.id,
            old_values=old_values,
            new_values=opportunity.snapshot(),
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Opportunity updated: {opportunity.id} by {editor.id}")
    names = await UserRepository.get_names(db, [opportunity.posted_by])
    return to_response(opportunity, names.get(opportunity.posted_by))


async def delete_opportunity(db: AsyncSession, opportunity_id: str, admin: User) -> None:
    """
    Soft delete an opportunity. Platform admins only.

    Raises:
        ForbiddenError: If the caller isn't an admin
        OpportunityNotFoundError: If it doesn't exist or was already deleted
    """
    if admin.role != UserRole.ADMIN:
        raise ForbiddenError("Only administrators can delete opportunities")

    opportunity = await repository.get_by_id(db, opportunity_id)
    if opportunity is None:
        raise OpportunityNotFoundError()

    old_values = opportunity.snapshot()

    try:
        await repository.soft_delete(db, opportunity, datetime.now(UTC))
        await repository.add_audit(
            db,
            opportunity_id=opportunity.id,
            action=AuditAction.DELETE,
            changed_by=admin.id,
            old_values=old_values,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Opportunity soft-deleted: {opportunity.id} by {admin.id}")


async def auto_close_expired(db: AsyncSession) -> AutoCloseResponse:
    """
    Close every open opportunity past its closing date.

    Idempotent: a second run finds nothing to close.
    """
    now = datetime.now(UTC)
    expired = await repository.list_expired_open(db, now)
    if not expired:
        return AutoCloseResponse(message="No expired opportunities found", closed_count=0)

    closed_ids = await close_if_expired(db, expired)
    logger.info(f"Auto-close job closed {len(closed_ids)} expired opportunities")

    return AutoCloseResponse(
        message=f"Successfully closed {len(closed_ids)} expired opportunities",
        closed_count=len(closed_ids),
        closed_ids=closed_ids,
    )
