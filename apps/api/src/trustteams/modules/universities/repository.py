"""
University Repository

Database operations for universities.
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.modules.universities.models import University

logger = logging.getLogger(__name__)


class UniversityRepository:
    """Repository for university database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        domain: str,
        address: str | None = None,
        website: str | None = None,
        contact_email: str | None = None,
        contact_phone: str | None = None,
        established_year: int | None = None,
    ) -> University:
        """
        Create a new university record.

        Args:
            db: Database session
            name: University name (unique)
            domain: Email domain of the institution (unique)
            address: Postal address (optional)
            website: Website URL (optional)
            contact_email: Contact email (optional)
            contact_phone: Contact phone (optional)
            established_year: Year the university was founded (optional)

        Returns:
            Created University instance
        """
        university = University(
            name=name,
            domain=domain.lower(),
            address=address,
            website=website,
            contact_email=contact_email,
            contact_phone=contact_phone,
            established_year=established_year,
            is_active=True,
        )

        db.add(university)
        await db.flush()
        await db.refresh(university)

        logger.info(f"Created university: {university.id} - {university.name}")
        return university

    @staticmethod
    async def get_by_id(db: AsyncSession, university_id: str | UUID) -> University | None:
        """Get a university by ID."""
        result = await db.execute(select(University).where(University.id == str(university_id)))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_name_or_domain(
        db: AsyncSession,
        name: str,
        domain: str,
    ) -> University | None:
        """Find a university that already uses the given name or domain."""
        result = await db.execute(
            select(University).where(
                (func.lower(University.name) == name.lower())
                | (func.lower(University.domain) == domain.lower())
            )
        )
        return result.scalars().first()

    @staticmethod
    async def list_active(db: AsyncSession) -> list[University]:
        """List active universities ordered by name."""
        result = await db.execute(
            select(University).where(University.is_active.is_(True)).order_by(University.name.asc())
        )
        return list(result.scalars().all())
