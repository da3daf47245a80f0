"""
ICM Profile Repository
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.modules.icm.models import IcmProfile


async def get_by_user_id(db: AsyncSession, user_id: str) -> IcmProfile | None:
    result = await db.execute(select(IcmProfile).where(IcmProfile.user_id == str(user_id)))
    return result.scalar_one_or_none()


async def create(db: AsyncSession, user_id: str, **sections: Any) -> IcmProfile:
    profile = IcmProfile(user_id=str(user_id), **sections)
    db.add(profile)
    await db.flush()
    await db.refresh(profile)
    return profile


async def update_fields(db: AsyncSession, profile: IcmProfile, **sections: Any) -> IcmProfile:
    for key, value in sections.items():
        if hasattr(profile, key):
            setattr(profile, key, value)
    await db.flush()
    await db.refresh(profile)
    return profile
