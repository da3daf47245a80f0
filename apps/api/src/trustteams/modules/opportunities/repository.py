"""
Opportunities Repository

Database operations for opportunities and their audit trail.
All reads exclude soft-deleted rows unless asked otherwise. Writes flush;
the service owns the transaction.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import asc, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import AuditAction, Opportunity, OpportunityAudit, OpportunityStatus, OpportunityType
from trustteams.modules.users.models import User

# Columns callers may sort by
SORTABLE_COLUMNS = {
    "created_at": Opportunity.created_at,
    "title": Opportunity.title,
    "closing_date": Opportunity.closing_date,
    "status": Opportunity.status,
    "type": Opportunity.type,
}


async def create(db: AsyncSession, **fields: Any) -> Opportunity:
    """Create a new opportunity."""
    opportunity = Opportunity(**fields)
    db.add(opportunity)
    await db.flush()
    await db.refresh(opportunity)
    return opportunity


async def get_by_id(
    db: AsyncSession,
    opportunity_id: str,
    include_deleted: bool = False,
) -> Opportunity | None:
    """Get an opportunity by ID."""
    query = select(Opportunity).where(Opportunity.id == str(opportunity_id))
    if not include_deleted:
        query = query.where(Opportunity.deleted_at.is_(None))
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def search(
    db: AsyncSession,
    *,
    search: str | None = None,
    status: OpportunityStatus | None = None,
    opportunity_type: OpportunityType | None = None,
    location: str | None = None,
    posted_by: str | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    limit: int = 10,
    offset: int = 0,
) -> tuple[list[Opportunity], int]:
    """
    Filtered, sorted and paginated opportunity search.

    Args:
        db: Database session
        search: Substring matched against title OR description (case-insensitive)
        status: Exact status filter
        opportunity_type: Exact type filter
        location: Substring matched against location
        posted_by: Only postings by this user
        sort_by: One of SORTABLE_COLUMNS (anything else sorts by created_at)
        sort_order: "asc" or "desc" (anything else is "desc")
        limit: Page size
        offset: Rows to skip

    Returns:
        Tuple of (opportunities, total count before pagination)
    """
    query = select(Opportunity).where(Opportunity.deleted_at.is_(None))

    if search:
        query = query.where(
            or_(
                Opportunity.title.icontains(search, autoescape=True),
                Opportunity.description.icontains(search, autoescape=True),
            )
        )
    if status:
        query = query.where(Opportunity.status == status)
    if opportunity_type:
        query = query.where(Opportunity.type == opportunity_type)
    if location:
        query = query.where(Opportunity.location.icontains(location, autoescape=True))
    if posted_by:
        query = query.where(Opportunity.posted_by == str(posted_by))

    # Get total count before pagination
    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    sort_column = SORTABLE_COLUMNS.get(sort_by, Opportunity.created_at)
    direction = asc if sort_order.lower() == "asc" else desc
    # Secondary key keeps pages stable when the sort column has ties
    query = query.order_by(direction(sort_column), desc(Opportunity.id))

    query = query.offset(offset).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all()), total


async def list_by_poster(db: AsyncSession, poster_id: str) -> list[Opportunity]:
    """All non-deleted postings of one user, newest first."""
    result = await db.execute(
        select(Opportunity)
        .where(Opportunity.posted_by == str(poster_id), Opportunity.deleted_at.is_(None))
        .order_by(Opportunity.created_at.desc())
    )
    return list(result.scalars().all())


async def list_expired_open(db: AsyncSession, now: datetime) -> list[Opportunity]:
    """Open, non-deleted opportunities whose closing date is before ``now``."""
    result = await db.execute(
        select(Opportunity).where(
            Opportunity.status == OpportunityStatus.OPEN,
            Opportunity.closing_date.is_not(None),
            Opportunity.closing_date < now,
            Opportunity.deleted_at.is_(None),
        )
    )
    return list(result.scalars().all())


async def close_many(db: AsyncSession, opportunity_ids: list[str], now: datetime) -> list[str]:
    """
    Close the given opportunities in one statement.

    Only rows that are still open are touched, so two concurrent closers
    never both report the same row.

    Returns:
        IDs of the rows this call closed
    """
    if not opportunity_ids:
        return []
    result = await db.execute(
        update(Opportunity)
        .where(
            Opportunity.id.in_(opportunity_ids),
            Opportunity.status == OpportunityStatus.OPEN,
        )
        .values(status=OpportunityStatus.CLOSED, updated_at=now)
        .returning(Opportunity.id)
        .execution_options(synchronize_session="fetch")
    )
    closed_ids = [str(row) for row in result.scalars().all()]
    await db.flush()
    return closed_ids


async def update_fields(db: AsyncSession, opportunity: Opportunity, **fields: Any) -> Opportunity:
    for key, value in fields.items():
        if hasattr(opportunity, key):
            setattr(opportunity, key, value)
    await db.flush()
    await db.refresh(opportunity)
    return opportunity


async def soft_delete(db: AsyncSession, opportunity: Opportunity, now: datetime) -> Opportunity:
    opportunity.deleted_at = now
    await db.flush()
    return opportunity


async def count_by_poster(db: AsyncSession, poster_id: str, since: datetime | None = None) -> int:
    """Count non-deleted postings of one user, optionally created after ``since``."""
    query = select(func.count(Opportunity.id)).where(
        Opportunity.posted_by == str(poster_id),
        Opportunity.deleted_at.is_(None),
    )
    if since is not None:
        query = query.where(Opportunity.created_at >= since)
    result = await db.execute(query)
    return result.scalar() or 0


async def count_by_posters(db: AsyncSession, poster_ids: list[str]) -> int:
    if not poster_ids:
        return 0
    result = await db.execute(
        select(func.count(Opportunity.id)).where(
            Opportunity.posted_by.in_(poster_ids),
            Opportunity.deleted_at.is_(None),
        )
    )
    return result.scalar() or 0


# ============================================
# Audit trail
# ============================================


async def add_audit(
    db: AsyncSession,
    *,
    opportunity_id: str,
    action: AuditAction,
    changed_by: str | None,
    old_values: dict | None = None,
    new_values: dict | None = None,
) -> OpportunityAudit:
    """Append an audit entry."""
    entry = OpportunityAudit(
        opportunity_id=opportunity_id,
        action=action,
        changed_by=changed_by,
        old_values=old_values,
        new_values=new_values,
    )
    db.add(entry)
    await db.flush()
    return entry


async def get_audit_trail(
    db: AsyncSession,
    opportunity_id: str,
) -> list[tuple[OpportunityAudit, str | None]]:
    """
    Audit entries of one opportunity, newest first.

    Returns:
        List of (entry, name of the acting user or None)
    """
    result = await db.execute(
        select(OpportunityAudit, User.name)
        .outerjoin(User, User.id == OpportunityAudit.changed_by)
        .where(OpportunityAudit.opportunity_id == str(opportunity_id))
        .order_by(OpportunityAudit.created_at.desc())
    )
    return [(row[0], row[1]) for row in result.all()]
