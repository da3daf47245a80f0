"""
User Repository

Database operations for user accounts. Writes flush but never commit;
the calling service owns the transaction.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.modules.users.models import ApprovalStatus, User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: UserRole,
        approval_status: ApprovalStatus,
        is_active: bool,
        university_id: str | None = None,
        institute_name: str | None = None,
        email_verification_token: str | None = None,
        email_verification_expires: datetime | None = None,
    ) -> User:
        """
        Create a new user record.

        Args:
            db: Database session
            name: Display name
            email: Email address (unique)
            password_hash: bcrypt hash of the password
            role: Canonical role
            approval_status: Initial approval status
            is_active: Whether the account may log in (subject to other checks)
            university_id: University the user belongs to
            institute_name: Free-text institute/department name
            email_verification_token: Hashed verification token
            email_verification_expires: Token expiry

        Returns:
            Created User instance
        """
        user = User(
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
            approval_status=approval_status,
            is_active=is_active,
            email_verified=False,
            university_id=university_id,
            institute_name=institute_name,
            email_verification_token=email_verification_token,
            email_verification_expires=email_verification_expires,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str | UUID) -> User | None:
        """Get a user by ID."""
        result = await db.execute(select(User).where(User.id == str(user_id)))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Get a user by email address (exact match)."""
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str, exclude_user_id: str | None = None) -> bool:
        """
        Check if an email address is already registered.

        Args:
            db: Database session
            email: Email address to check
            exclude_user_id: Ignore this user (used when a user changes their own email)
        """
        query = select(User.id).where(User.email == email)
        if exclude_user_id:
            query = query.where(User.id != str(exclude_user_id))
        result = await db.execute(query)
        return result.first() is not None

    @staticmethod
    async def get_by_verification_token(db: AsyncSession, token_hash: str) -> User | None:
        """Get a user by the hash of their email verification token."""
        result = await db.execute(select(User).where(User.email_verification_token == token_hash))
        return result.scalar_one_or_none()

    @staticmethod
    async def update(db: AsyncSession, user: User, **fields) -> User:
        """Apply field updates to a user and flush."""
        for key, value in fields.items():
            if hasattr(user, key):
                setattr(user, key, value)

        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def delete(db: AsyncSession, user_id: str) -> None:
        """Hard-delete a user. Dependent rows are removed by ON DELETE CASCADE."""
        await db.execute(delete(User).where(User.id == str(user_id)))
        await db.flush()
        logger.info(f"Deleted user: {user_id}")

    @staticmethod
    async def has_approved_university_admin(db: AsyncSession, university_id: str) -> bool:
        """Check whether a university already has an approved university_admin."""
        result = await db.execute(
            select(User.id).where(
                User.university_id == str(university_id),
                User.role == UserRole.UNIVERSITY_ADMIN,
                User.approval_status == ApprovalStatus.APPROVED,
            )
        )
        return result.first() is not None

    @staticmethod
    async def has_university_admin(db: AsyncSession, university_id: str) -> bool:
        """Check whether any university_admin account exists for a university."""
        result = await db.execute(
            select(User.id).where(
                User.university_id == str(university_id),
                User.role == UserRole.UNIVERSITY_ADMIN,
            )
        )
        return result.first() is not None

    @staticmethod
    async def list_notifiable_students(db: AsyncSession) -> list[User]:
        """Get all active students with a verified email (opportunity broadcast audience)."""
        result = await db.execute(
            select(User).where(
                User.role == UserRole.STUDENT,
                User.is_active.is_(True),
                User.email_verified.is_(True),
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_by_university(
        db: AsyncSession,
        university_id: str,
        role: UserRole | None = None,
        limit: int = 500,
    ) -> list[User]:
        """List users of a university, newest first, optionally filtered by role."""
        query = select(User).where(User.university_id == str(university_id))
        if role:
            query = query.where(User.role == role)
        query = query.order_by(User.created_at.desc()).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def list_by_email_domain(
        db: AsyncSession,
        domain: str,
        role: UserRole | None = None,
        limit: int = 500,
    ) -> list[User]:
        """
        List users whose email belongs to a domain.

        Only a fallback for accounts that carry no university_id.
        """
        query = select(User).where(func.lower(User.email).like(f"%@{domain.lower()}"))
        if role:
            query = query.where(User.role == role)
        query = query.order_by(User.created_at.desc()).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def count_by_approval_status(
        db: AsyncSession,
        university_id: str,
        role: UserRole,
    ) -> dict[str, int]:
        """
        Count users of one role in a university grouped by approval status.

        Returns:
            Dict with a key for every ApprovalStatus value plus "total"
        """
        result = await db.execute(
            select(User.approval_status, func.count(User.id))
            .where(User.university_id == str(university_id), User.role == role)
            .group_by(User.approval_status)
        )

        counts = {status.value: 0 for status in ApprovalStatus}
        for approval_status, count in result.all():
            counts[approval_status.value] = count
        counts["total"] = sum(counts.values())
        return counts

    @staticmethod
    async def get_names(db: AsyncSession, user_ids: list[str]) -> dict[str, str]:
        """Map user ids to display names for joined projections."""
        ids = {str(user_id) for user_id in user_ids if user_id}
        if not ids:
            return {}
        result = await db.execute(select(User.id, User.name).where(User.id.in_(ids)))
        return {row[0]: row[1] for row in result.all()}

    @staticmethod
    async def list_ids_by_university(db: AsyncSession, university_id: str) -> list[str]:
        """IDs of every user of a university."""
        result = await db.execute(select(User.id).where(User.university_id == str(university_id)))
        return [row[0] for row in result.all()]
