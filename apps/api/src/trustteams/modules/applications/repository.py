"""
Applications Repository

Database operations for opportunity applications.
"""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from trustteams.modules.applications.models import OpportunityApplication
from trustteams.modules.opportunities.models import Opportunity
from trustteams.modules.users.models import User


async def create(db: AsyncSession, **fields: Any) -> OpportunityApplication:
    """Create a new application."""
    application = OpportunityApplication(**fields)
    db.add(application)
    await db.flush()
    await db.refresh(application)
    return application


async def get_by_id(db: AsyncSession, application_id: str) -> OpportunityApplication | None:
    result = await db.execute(
        select(OpportunityApplication).where(OpportunityApplication.id == str(application_id))
    )
    return result.scalar_one_or_none()


async def exists(db: AsyncSession, opportunity_id: str, student_id: str) -> bool:
    """Check whether a student already applied to an opportunity."""
    result = await db.execute(
        select(OpportunityApplication.id).where(
            OpportunityApplication.opportunity_id == str(opportunity_id),
            OpportunityApplication.student_id == str(student_id),
        )
    )
    return result.first() is not None


async def list_for_opportunity(
    db: AsyncSession,
    opportunity_id: str,
) -> list[tuple[OpportunityApplication, User]]:
    """Applications to one opportunity with their students, newest first."""
    result = await db.execute(
        select(OpportunityApplication, User)
        .join(User, User.id == OpportunityApplication.student_id)
        .where(OpportunityApplication.opportunity_id == str(opportunity_id))
        .order_by(OpportunityApplication.application_date.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def list_for_student(
    db: AsyncSession,
    student_id: str,
    poster_id: str | None = None,
) -> list[tuple[OpportunityApplication, Opportunity, str | None, str | None]]:
    """
    Applications of one student with their opportunities, newest first.

    Applications to deleted opportunities are left out.

    Args:
        db: Database session
        student_id: Applicant
        poster_id: Only applications to this user's postings

    Returns:
        List of (application, opportunity, poster name, poster email)
    """
    poster = aliased(User)
    query = (
        select(OpportunityApplication, Opportunity, poster.name, poster.email)
        .join(Opportunity, Opportunity.id == OpportunityApplication.opportunity_id)
        .outerjoin(poster, poster.id == Opportunity.posted_by)
        .where(
            OpportunityApplication.student_id == str(student_id),
            Opportunity.deleted_at.is_(None),
        )
    )
    if poster_id:
        query = query.where(Opportunity.posted_by == str(poster_id))
    query = query.order_by(OpportunityApplication.application_date.desc())

    result = await db.execute(query)
    return [(row[0], row[1], row[2], row[3]) for row in result.all()]


async def update_fields(
    db: AsyncSession,
    application: OpportunityApplication,
    **fields: Any,
) -> OpportunityApplication:
    for key, value in fields.items():
        if hasattr(application, key):
            setattr(application, key, value)
    await db.flush()
    await db.refresh(application)
    return application


async def count_for_posters(db: AsyncSession, poster_ids: list[str]) -> int:
    """Count applications to non-deleted postings of the given users."""
    if not poster_ids:
        return 0
    result = await db.execute(
        select(func.count(OpportunityApplication.id))
        .join(Opportunity, Opportunity.id == OpportunityApplication.opportunity_id)
        .where(
            Opportunity.posted_by.in_([str(p) for p in poster_ids]),
            Opportunity.deleted_at.is_(None),
        )
    )
    return result.scalar() or 0


async def count_by_opportunity(db: AsyncSession, opportunity_ids: list[str]) -> dict[str, int]:
    """Map opportunity ids to their application counts."""
    if not opportunity_ids:
        return {}
    result = await db.execute(
        select(OpportunityApplication.opportunity_id, func.count(OpportunityApplication.id))
        .where(OpportunityApplication.opportunity_id.in_(opportunity_ids))
        .group_by(OpportunityApplication.opportunity_id)
    )
    return {row[0]: row[1] for row in result.all()}
