"""
Registration Requests Service Layer

Approval workflow for student and academic leader accounts.

A decision updates the request and the linked user in one transaction:
both rows change or neither does. No email is sent on decision; the login
endpoint tells the user where their registration stands.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.modules.registration_requests import repository
from trustteams.modules.registration_requests.models import RequestStatus
from trustteams.modules.registration_requests.schemas import (
    DecisionAction,
    DecisionResponse,
    RegistrationRequestItem,
)
from trustteams.modules.shared import ForbiddenError, ServiceError
from trustteams.modules.users.models import ApprovalStatus, User, UserRole
from trustteams.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class RegistrationRequestError(ServiceError):
    """Base exception for approval workflow errors."""


class RequestNotFoundError(RegistrationRequestError):
    def __init__(self):
        super().__init__(
            message="Registration request not found",
            error_code="REQUEST_NOT_FOUND",
            status_code=404,
        )


class RequestAlreadyDecidedError(RegistrationRequestError):
    def __init__(self, status: RequestStatus):
        super().__init__(
            message=f"Registration request has already been {status.value}",
            error_code="REQUEST_ALREADY_DECIDED",
            status_code=409,
        )


async def list_pending(db: AsyncSession, university_id: str) -> list[RegistrationRequestItem]:
    """List pending registration requests of a university, oldest first."""
    rows = await repository.list_pending_with_users(db, university_id)
    return [
        RegistrationRequestItem(
            id=request.id,
            user_id=request.user_id,
            university_id=request.university_id,
            institute_name=request.institute_name,
            role=request.role,
            status=request.status,
            user_name=name,
            user_email=email,
            created_at=request.created_at,
        )
        for request, name, email in rows
    ]


async def decide(
    db: AsyncSession,
    request_id: str,
    action: DecisionAction,
    reviewer: User,
    rejection_reason: str | None = None,
) -> DecisionResponse:
    """
    Approve or reject a registration request.

    Args:
        db: Database session
        request_id: Request to decide
        action: approve or reject
        reviewer: University admin (or platform admin) making the decision
        rejection_reason: Optional reason, only stored on rejection

    Returns:
        DecisionResponse with the new request status

    Raises:
        RequestNotFoundError: If the request (or its user) doesn't exist
        ForbiddenError: If the reviewer administers a different university
        RequestAlreadyDecidedError: If the request is no longer pending
    """
    request = await repository.get_by_id(db, request_id)
    if request is None:
        raise RequestNotFoundError()

    if reviewer.role != UserRole.ADMIN and request.university_id != reviewer.university_id:
        logger.warning(
            f"Reviewer {reviewer.id} tried to decide request {request_id} of another university"
        )
        raise ForbiddenError("You can only decide registration requests for your own university")

    if request.status != RequestStatus.PENDING:
        raise RequestAlreadyDecidedError(request.status)

    user = await UserRepository.get_by_id(db, request.user_id)
    if user is None:
        raise RequestNotFoundError()

    approve = action == DecisionAction.APPROVE
    now = datetime.now(UTC)
    reason = None if approve else rejection_reason
    new_status = RequestStatus.APPROVED if approve else RequestStatus.REJECTED

    try:
        await repository.apply_decision(
            db,
            request,
            status=new_status,
            approved_by=reviewer.id,
            approved_at=now,
            rejection_reason=reason,
        )
        await UserRepository.update(
            db,
            user,
            approval_status=ApprovalStatus.APPROVED if approve else ApprovalStatus.REJECTED,
            is_active=approve,
            approved_by=reviewer.id,
            approved_at=now,
            rejection_reason=reason,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Registration request {request.id} {new_status.value} by {reviewer.id}")

    return DecisionResponse(
        message=f"Registration request {new_status.value}",
        request_id=request.id,
        user_id=user.id,
        status=new_status,
    )
