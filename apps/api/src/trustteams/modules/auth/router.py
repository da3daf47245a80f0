"""
Authentication Router

Account endpoints. Signup, login and verification are public; /me and
/profile need the caller's identity.

Endpoints:
- POST /auth/signup - Register an account
- POST /auth/login - Authenticate and receive tokens
- GET /auth/verify-email/{token} - Exchange an email verification token
- POST /auth/resend-verification - Send a new verification link
- GET /auth/me - Current user
- PUT /auth/profile - Update name, email or password
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.core.auth import get_current_user
from trustteams.core.database import get_db
from trustteams.modules.auth import service
from trustteams.modules.auth.schemas import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    ResendVerificationRequest,
    SignupRequest,
    SignupResponse,
    VerifyEmailResponse,
)
from trustteams.modules.shared import ServiceError, internal_error, raise_http_error
from trustteams.modules.users.models import User

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register Account",
    description="""
Register a new account.

The role is taken from `role`, else from `userType`, else `viewer`.

- **university_admin**: pass `university_id` of an unclaimed university, or a
  `university` object to register a new one. Approved immediately.
- **student / academic_leader**: `university_id` and `institute_name` are required
  and the university must have an approved administrator. The account stays
  pending until that administrator approves it.
- **other roles**: approved immediately.

Every account must verify its email before logging in.
""",
)
async def signup(
    data: SignupRequest,
    db: AsyncSession = Depends(get_db),
) -> SignupResponse:
    try:
        return await service.signup(db, data)
    except ServiceError as e:
        logger.warning(f"Signup rejected: {e.error_code} - {e.message}")
        raise_http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error during signup: {e}")
        raise internal_error() from e


@router.post("/login", response_model=LoginResponse, summary="Log In")
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Raises:
        HTTPException 401: Invalid credentials or deactivated account
        HTTPException 403: Email not verified, or registration pending/rejected
    """
    try:
        return await service.login(db, credentials.email, credentials.password)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error during login: {e}")
        raise internal_error() from e


@router.get(
    "/verify-email/{token}",
    response_model=VerifyEmailResponse,
    summary="Verify Email",
)
async def verify_email(
    token: str,
    db: AsyncSession = Depends(get_db),
) -> VerifyEmailResponse:
    """
    Verify the email address linked to a token.

    Already-verified accounts get a fresh link instead of an error.
    """
    try:
        return await service.verify_email(db, token)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error verifying email: {e}")
        raise internal_error() from e


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    summary="Resend Verification Email",
)
async def resend_verification(
    data: ResendVerificationRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        message = await service.resend_verification(db, data.email)
        return MessageResponse(message=message)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error resending verification: {e}")
        raise internal_error() from e


@router.get("/me", response_model=MeResponse, summary="Current User")
async def me(user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse(user=service.get_me(user))


@router.put("/profile", response_model=ProfileUpdateResponse, summary="Update Profile")
async def update_profile(
    data: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileUpdateResponse:
    """
    Update the caller's name, email or password.

    Changing the password requires `currentPassword`.
    """
    try:
        return await service.update_profile(db, user, data)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error updating profile: {e}")
        raise internal_error() from e
