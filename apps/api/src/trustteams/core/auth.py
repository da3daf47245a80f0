"""
Authentication and Authorization Module

Resolves the calling user for FastAPI endpoints and provides role gates.

The caller's user id is taken from, in order:
1. A Bearer access token issued by /auth/login (``sub`` claim)
2. The ``X-User-Id`` header, only when TRUST_USER_ID_HEADER is enabled
   (the header is expected to be set by a trusted gateway)

The id is always re-read from the database so role and account state are
current on every request.
"""

import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.core.config import settings
from trustteams.core.database import get_db
from trustteams.core.security import decode_token
from trustteams.modules.users.models import ApprovalStatus, User, UserRole
from trustteams.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token issued by /auth/login",
)


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _approval_required(approval_status: ApprovalStatus) -> HTTPException:
    if approval_status == ApprovalStatus.REJECTED:
        error, message = "APPROVAL_REJECTED", "Your registration was rejected."
    else:
        error, message = "APPROVAL_PENDING", "Your registration is pending approval."
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"error": error, "message": message, "approval_status": approval_status.value},
    )


def _resolve_caller_id(
    credentials: HTTPAuthorizationCredentials | None,
    x_user_id: str | None,
) -> str:
    """
    Extract the caller's user id from the request.

    Raises:
        HTTPException 401: If no identity is present or the token is invalid
    """
    if credentials and credentials.credentials:
        payload = decode_token(credentials.credentials)
        if payload is None:
            logger.warning("Invalid or expired JWT token")
            raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

        if payload.get("type", "access") != "access":
            raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

        user_id = payload.get("sub")
        if not user_id:
            raise _unauthorized("INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims.")
        return user_id

    if settings.trust_user_id_header and x_user_id:
        return x_user_id.strip()

    raise _unauthorized("AUTH_REQUIRED", "User ID required")


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    FastAPI dependency returning the authenticated, active user.

    Raises:
        HTTPException 401: AUTH_REQUIRED, INVALID_USER or ACCOUNT_DEACTIVATED
        HTTPException 403: APPROVAL_PENDING or APPROVAL_REJECTED for students and
            academic leaders whose registration is not approved
    """
    user_id = _resolve_caller_id(credentials, x_user_id)

    try:
        UUID(user_id)
    except ValueError:
        logger.warning("Rejected malformed caller id")
        raise _unauthorized("INVALID_USER", "Invalid user") from None

    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        logger.warning(f"Caller id does not match any user: {user_id}")
        raise _unauthorized("INVALID_USER", "Invalid user")

    if user.requires_approval and user.approval_status != ApprovalStatus.APPROVED:
        logger.warning(f"Blocked unapproved caller {user.id} ({user.approval_status.value})")
        raise _approval_required(user.approval_status)

    if not user.is_active:
        raise _unauthorized("ACCOUNT_DEACTIVATED", "Account is deactivated")

    return user


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[User]]:
    """
    Build a dependency that only admits users with one of the given roles.

    Usage:
        @router.get("/students")
        async def list_students(
            user: User = Depends(require_roles(UserRole.ACADEMIC_LEADER, UserRole.ADMIN)),
        ):
            ...
    """
    allowed = frozenset(roles)

    async def _dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            logger.warning(
                f"Access denied: user {user.id} has role '{user.role.value}', "
                f"requires one of {sorted(role.value for role in allowed)}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "FORBIDDEN",
                    "message": "You do not have permission to access this resource.",
                },
            )
        return user

    return _dependency


__all__ = [
    "get_current_user",
    "require_roles",
]
