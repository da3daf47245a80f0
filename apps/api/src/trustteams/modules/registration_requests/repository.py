"""
Registration Requests Repository

Database operations for registration requests. Writes flush; the service commits.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.modules.registration_requests.models import RegistrationRequest, RequestStatus
from trustteams.modules.users.models import User, UserRole


async def create(
    db: AsyncSession,
    *,
    user_id: str,
    university_id: str,
    role: UserRole,
    institute_name: str | None,
) -> RegistrationRequest:
    """Create a pending registration request."""
    request = RegistrationRequest(
        user_id=user_id,
        university_id=university_id,
        role=role,
        institute_name=institute_name,
        status=RequestStatus.PENDING,
    )
    db.add(request)
    await db.flush()
    return request


async def get_by_id(db: AsyncSession, request_id: str) -> RegistrationRequest | None:
    result = await db.execute(
        select(RegistrationRequest).where(RegistrationRequest.id == str(request_id))
    )
    return result.scalar_one_or_none()


async def list_pending_with_users(
    db: AsyncSession,
    university_id: str,
) -> list[tuple[RegistrationRequest, str, str]]:
    """
    Get pending requests of a university joined with the requester.

    Returns:
        List of (request, user name, user email), oldest first
    """
    result = await db.execute(
        select(RegistrationRequest, User.name, User.email)
        .join(User, User.id == RegistrationRequest.user_id)
        .where(
            RegistrationRequest.university_id == str(university_id),
            RegistrationRequest.status == RequestStatus.PENDING,
        )
        .order_by(RegistrationRequest.created_at.asc())
    )
    return [(row[0], row[1], row[2]) for row in result.all()]


async def apply_decision(
    db: AsyncSession,
    request: RegistrationRequest,
    *,
    status: RequestStatus,
    approved_by: str,
    approved_at: datetime,
    rejection_reason: str | None,
) -> RegistrationRequest:
    """Record a decision on a request."""
    request.status = status
    request.approved_by = approved_by
    request.approved_at = approved_at
    request.rejection_reason = rejection_reason
    await db.flush()
    return request
