"""
Student Profile Repository
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.modules.students.models import StudentProfile


async def get_by_user_id(db: AsyncSession, user_id: str) -> StudentProfile | None:
    result = await db.execute(select(StudentProfile).where(StudentProfile.user_id == str(user_id)))
    return result.scalar_one_or_none()


async def create_empty(db: AsyncSession, user_id: str) -> StudentProfile:
    """Create a profile with no links and empty sections."""
    profile = StudentProfile(
        user_id=str(user_id),
        skills=[],
        experiences=[],
        education=[],
        projects=[],
    )
    db.add(profile)
    await db.flush()
    await db.refresh(profile)
    return profile


async def update_fields(db: AsyncSession, profile: StudentProfile, **fields: Any) -> StudentProfile:
    for key, value in fields.items():
        if hasattr(profile, key):
            setattr(profile, key, value)
    await db.flush()
    await db.refresh(profile)
    return profile
