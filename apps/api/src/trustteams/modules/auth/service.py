"""
Authentication Service Layer

Business logic for accounts: signup, login, email verification and profile
updates.

This module implements:
1. Signup:
   - Derive a canonical role from the request
   - Branch per role (university admin, student/academic leader, ICM roles)
   - Create the user (and registration request or university) in one transaction
   - Send a verification email (failure is logged, signup still succeeds)

2. Login:
   - Credentials, email verification, approval and active checks in that order
   - Issue JWT access/refresh tokens

3. Email verification:
   - Tokens use secrets.token_urlsafe and are stored SHA-256 hashed
   - Expired tokens are rejected; a new one can be requested
   - Resend is the one flow where a failed email is the user's error

4. Profile update:
   - Partial update with email uniqueness and current password checks
"""

import hashlib
import logging
import secrets
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from trustteams.core.config import settings
from trustteams.core.email import (
    send_resend_verification_email,
    send_verification_email,
    send_welcome_email,
)
from trustteams.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
)
from trustteams.modules.auth.schemas import (
    CurrentUserResponse,
    LoginResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    PublicUser,
    SignupRequest,
    SignupResponse,
    VerifyEmailResponse,
)
from trustteams.modules.registration_requests import repository as registration_repository
from trustteams.modules.shared import ServiceError, ValidationError
from trustteams.modules.universities.models import University
from trustteams.modules.universities.repository import UniversityRepository
from trustteams.modules.universities.service import UniversityExistsError
from trustteams.modules.users.models import (
    APPROVAL_REQUIRED_ROLES,
    ApprovalStatus,
    User,
    UserRole,
)
from trustteams.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
TOKEN_LENGTH = 32  # 256 bits of entropy when using token_urlsafe

# Every accepted spelling of a role hint, lower-cased
_ROLE_ALIASES: dict[str, UserRole] = {
    "student": UserRole.STUDENT,
    "academic": UserRole.ACADEMIC_LEADER,
    "academic_leader": UserRole.ACADEMIC_LEADER,
    "leader": UserRole.ACADEMIC_LEADER,
    "university": UserRole.UNIVERSITY_ADMIN,
    "university_admin": UserRole.UNIVERSITY_ADMIN,
    "university administration": UserRole.UNIVERSITY_ADMIN,
    "icm": UserRole.MANAGER,
    "manager": UserRole.MANAGER,
    "admin": UserRole.MANAGER,
}


# ============================================
# Errors
# ============================================


class AuthServiceError(ServiceError):
    """Base exception for authentication service errors."""


class EmailAlreadyExistsError(AuthServiceError):
    def __init__(self, message: str = "User with this email already exists"):
        super().__init__(
            message=message,
            error_code="EMAIL_ALREADY_EXISTS",
            status_code=400,
        )


class InvalidCredentialsError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="Invalid email or password",
            error_code="INVALID_CREDENTIALS",
            status_code=401,
        )


class AccountDeactivatedError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="Account is deactivated",
            error_code="ACCOUNT_DEACTIVATED",
            status_code=401,
        )


class VerificationRequiredError(AuthServiceError):
    """Login attempted before the email address was verified."""

    def __init__(self, approval_status: ApprovalStatus):
        super().__init__(
            message="Please verify your email address before logging in.",
            error_code="VERIFICATION_REQUIRED",
            status_code=403,
            extra={"email_verified": False, "approval_status": approval_status.value},
        )


class ApprovalPendingError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="Your registration is pending approval by your university administrator.",
            error_code="APPROVAL_PENDING",
            status_code=403,
            extra={"approval_status": ApprovalStatus.PENDING.value},
        )


class ApprovalRejectedError(AuthServiceError):
    def __init__(self, rejection_reason: str | None = None):
        extra = {"approval_status": ApprovalStatus.REJECTED.value}
        if rejection_reason:
            extra["rejection_reason"] = rejection_reason
        super().__init__(
            message="Your registration was rejected by your university administrator.",
            error_code="APPROVAL_REJECTED",
            status_code=403,
            extra=extra,
        )


class InvalidTokenError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="Invalid or missing verification token.",
            error_code="INVALID_TOKEN",
            status_code=400,
        )


class TokenExpiredError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="Verification token has expired. Please request a new one.",
            error_code="TOKEN_EXPIRED",
            status_code=400,
        )


class AlreadyVerifiedError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="Email is already verified",
            error_code="ALREADY_VERIFIED",
            status_code=400,
        )


class UserNotFoundError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="User not found",
            error_code="USER_NOT_FOUND",
            status_code=404,
        )


class NoChangesError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="No changes provided",
            error_code="NO_CHANGES",
            status_code=400,
        )


class EmailDeliveryFailedError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="Failed to send verification email. Please try again later.",
            error_code="EMAIL_DELIVERY_FAILED",
            status_code=500,
        )


class SignupUniversityNotFoundError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="Selected university does not exist",
            error_code="UNIVERSITY_NOT_FOUND",
            status_code=400,
        )


class UniversityHasAdminError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message="This university already has an administrator",
            error_code="UNIVERSITY_HAS_ADMIN",
            status_code=400,
        )


class UniversityNotReadyError(AuthServiceError):
    def __init__(self):
        super().__init__(
            message=(
                "This university has no approved administrator yet. "
                "Registration will open once a university administrator is approved."
            ),
            error_code="UNIVERSITY_NOT_READY",
            status_code=400,
        )


# ============================================
# Helpers
# ============================================


def canonicalize_role(value: str | None) -> UserRole | None:
    """Map one role spelling to a canonical role. Returns None for blank input."""
    normalized = (value or "").strip().lower()
    if not normalized:
        return None
    return _ROLE_ALIASES.get(normalized, UserRole.VIEWER)


def derive_role(role: str | None, user_type: str | None) -> UserRole:
    """
    Derive the account role from the signup body.

    The explicit ``role`` field wins when present, then ``userType``;
    with neither the account is a viewer.
    """
    return canonicalize_role(role) or canonicalize_role(user_type) or UserRole.VIEWER


def build_display_name(
    first_name: str | None,
    last_name: str | None,
    name: str | None,
) -> str:
    """First/last name take precedence over a single name field."""
    first = (first_name or "").strip()
    last = (last_name or "").strip()
    if first or last:
        return f"{first} {last}".strip()
    return (name or "").strip()


def _hash_token(token: str) -> str:
    """Hex SHA-256 of a token. Only the hash is stored."""
    return hashlib.sha256(token.encode()).hexdigest()


def _generate_verification_token() -> tuple[str, str, datetime]:
    """
    Create a new verification token.

    Returns:
        (plain token for the email link, hash for storage, expiry)
    """
    token = secrets.token_urlsafe(TOKEN_LENGTH)
    expires = datetime.now(UTC) + timedelta(hours=settings.verification_token_expiry_hours)
    return token, _hash_token(token), expires


def _is_uuid(value: str) -> bool:
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


def _current_user_response(user: User) -> CurrentUserResponse:
    return CurrentUserResponse.model_validate(user)


async def _load_university(db: AsyncSession, university_id: str) -> University:
    if not _is_uuid(university_id):
        raise SignupUniversityNotFoundError()
    university = await UniversityRepository.get_by_id(db, university_id)
    if university is None:
        raise SignupUniversityNotFoundError()
    return university


# ============================================
# Signup
# ============================================


async def _prepare_university_admin(db: AsyncSession, data: SignupRequest) -> University:
    """Resolve or create the university a new university_admin will manage."""
    if data.university_id:
        university = await _load_university(db, data.university_id)
        if await UserRepository.has_university_admin(db, university.id):
            raise UniversityHasAdminError()
        return university

    if data.university is None:
        raise ValidationError(
            "University administrators must select an existing university or provide "
            "details for a new one"
        )

    if await UniversityRepository.get_by_name_or_domain(
        db, data.university.name, data.university.domain
    ):
        raise UniversityExistsError()

    return await UniversityRepository.create(db, **data.university.model_dump())


async def _prepare_affiliated_member(db: AsyncSession, data: SignupRequest) -> University:
    """Check the university a student or academic leader registers against."""
    if not data.university_id or not (data.institute_name or "").strip():
        raise ValidationError(
            "University and institute name are required for students and academic leaders"
        )

    university = await _load_university(db, data.university_id)
    if not await UserRepository.has_approved_university_admin(db, university.id):
        raise UniversityNotReadyError()
    return university


async def signup(db: AsyncSession, data: SignupRequest) -> SignupResponse:
    """
    Register a new account.

    Args:
        db: Database session
        data: Signup request body

    Returns:
        SignupResponse with the public user projection

    Raises:
        ValidationError: If required fields are missing or the password is too short
        EmailAlreadyExistsError: If the email is already registered
        SignupUniversityNotFoundError: If the referenced university doesn't exist
        UniversityHasAdminError: If a university_admin signs up for a claimed university
        UniversityNotReadyError: If the university has no approved administrator yet
    """
    display_name = build_display_name(data.first_name, data.last_name, data.name)
    email = data.email.strip()

    if not display_name or not email or not data.password:
        raise ValidationError("Name, email and password are required")

    if len(data.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if await UserRepository.email_exists(db, email):
        logger.warning(f"Signup attempt with existing email: {email}")
        raise EmailAlreadyExistsError()

    role = derive_role(data.role, data.user_type)
    logger.info(f"Processing signup: email={email}, role={role.value}")

    token, token_hash, token_expires = _generate_verification_token()

    try:
        university: University | None = None
        institute_name = (data.institute_name or "").strip() or None

        if role == UserRole.UNIVERSITY_ADMIN:
            university = await _prepare_university_admin(db, data)
            institute_name = institute_name or university.name
        elif role in APPROVAL_REQUIRED_ROLES:
            university = await _prepare_affiliated_member(db, data)

        requires_approval = role in APPROVAL_REQUIRED_ROLES

        user = await UserRepository.create(
            db,
            name=display_name,
            email=email,
            password_hash=hash_password(data.password),
            role=role,
            approval_status=ApprovalStatus.PENDING if requires_approval else ApprovalStatus.APPROVED,
            is_active=not requires_approval,
            university_id=university.id if university else None,
            institute_name=institute_name,
            email_verification_token=token_hash,
            email_verification_expires=token_expires,
        )

        if requires_approval:
            await registration_repository.create(
                db,
                user_id=user.id,
                university_id=university.id,
                role=role,
                institute_name=institute_name,
            )

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Created user {user.id} ({role.value})")

    # Send verification email (non-blocking - log error but don't fail the request)
    email_sent = False
    try:
        email_sent = await send_verification_email(user.email, user.name, token)
        if not email_sent:
            logger.error(f"Failed to send verification email to user {user.id}")
    except Exception as e:
        logger.error(f"Exception sending verification email to user {user.id}: {e}")

    message = "User created successfully. Please check your email to verify your account."
    if requires_approval:
        message = (
            "Registration submitted. Please verify your email; you can log in once "
            "your university administrator approves your registration."
        )

    return SignupResponse(
        message=message,
        user=PublicUser.model_validate(user),
        email_verification_sent=email_sent,
        requires_approval=requires_approval,
    )


# ============================================
# Login
# ============================================


async def login(db: AsyncSession, email: str, password: str) -> LoginResponse:
    """
    Authenticate a user and issue tokens.

    Raises:
        InvalidCredentialsError: Unknown email or wrong password
        VerificationRequiredError: Email not verified yet
        ApprovalPendingError / ApprovalRejectedError: Registration not approved
        AccountDeactivatedError: Account disabled
    """
    user = await UserRepository.get_by_email(db, email.strip())

    if user is None:
        logger.warning(f"Login attempt for non-existent email: {email}")
        raise InvalidCredentialsError()

    if not verify_password(password, user.password_hash):
        logger.warning(f"Invalid password for user: {email}")
        raise InvalidCredentialsError()

    if not user.email_verified:
        raise VerificationRequiredError(user.approval_status)

    if user.requires_approval:
        if user.approval_status == ApprovalStatus.PENDING:
            raise ApprovalPendingError()
        if user.approval_status == ApprovalStatus.REJECTED:
            raise ApprovalRejectedError(user.rejection_reason)

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account: {email}")
        raise AccountDeactivatedError()

    try:
        await UserRepository.update(db, user, last_login=datetime.now(UTC))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    access_token = create_access_token(
        subject=str(user.id),
        additional_claims={"email": user.email, "role": user.role.value, "name": user.name},
    )
    refresh_token = create_refresh_token(subject=str(user.id))

    logger.info(f"User logged in: {user.email} (role: {user.role.value})")

    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=PublicUser.model_validate(user),
    )


# ============================================
# Email verification
# ============================================


async def verify_email(db: AsyncSession, token: str) -> VerifyEmailResponse:
    """
    Exchange a verification token.

    An already-verified owner of the token gets a fresh link instead of an
    error. A token that is really an email address of an already-verified
    user is answered as already verified.

    Raises:
        InvalidTokenError: If the token matches no user
        TokenExpiredError: If the token has expired
    """
    user = await UserRepository.get_by_verification_token(db, _hash_token(token))

    if user is None:
        if "@" in token:
            by_email = await UserRepository.get_by_email(db, token)
            if by_email is not None and by_email.email_verified:
                return VerifyEmailResponse(
                    message="Email is already verified",
                    already_verified=True,
                )
        # Don't log token content
        logger.warning("Email verification failed: token not found")
        raise InvalidTokenError()

    if user.email_verified:
        new_token, new_hash, new_expires = _generate_verification_token()
        try:
            await UserRepository.update(
                db,
                user,
                email_verification_token=new_hash,
                email_verification_expires=new_expires,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        sent = await send_verification_email(user.email, user.name, new_token)
        if not sent:
            logger.error(f"Failed to re-send verification email to user {user.id}")

        return VerifyEmailResponse(
            message="Email is already verified. A new verification link has been sent.",
            already_verified=True,
            verification_resent=sent,
        )

    if user.email_verification_expires and datetime.now(UTC) > user.email_verification_expires:
        logger.warning(f"Email verification failed: token expired for user {user.id}")
        raise TokenExpiredError()

    rejected = user.requires_approval and user.approval_status == ApprovalStatus.REJECTED
    try:
        await UserRepository.update(
            db,
            user,
            email_verified=True,
            is_active=not rejected,
            email_verification_token=None,
            email_verification_expires=None,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Email verified for user {user.id}")

    try:
        if not await send_welcome_email(user.email, user.name):
            logger.error(f"Failed to send welcome email to user {user.id}")
    except Exception as e:
        logger.error(f"Exception sending welcome email to user {user.id}: {e}")

    return VerifyEmailResponse(message="Email verified successfully")


async def resend_verification(db: AsyncSession, email: str) -> str:
    """
    Issue a new verification token and email it.

    Returns:
        Confirmation message

    Raises:
        UserNotFoundError: If no user has this email
        AlreadyVerifiedError: If the email is already verified
        EmailDeliveryFailedError: If the email could not be sent
    """
    user = await UserRepository.get_by_email(db, email.strip())
    if user is None:
        raise UserNotFoundError()

    if user.email_verified:
        raise AlreadyVerifiedError()

    token, token_hash, token_expires = _generate_verification_token()

    try:
        await UserRepository.update(
            db,
            user,
            email_verification_token=token_hash,
            email_verification_expires=token_expires,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    # Email delivery is the whole point of this call
    if not await send_resend_verification_email(user.email, user.name, token):
        logger.error(f"Failed to resend verification email to user {user.id}")
        raise EmailDeliveryFailedError()

    logger.info(f"Verification email resent to user {user.id}")
    return "Verification email sent. Please check your inbox."


async def force_verify_email(db: AsyncSession, email: str) -> User:
    """
    Mark a user's email as verified without a token.

    Only exposed through the development debug endpoints.

    Raises:
        UserNotFoundError: If no user has this email
    """
    user = await UserRepository.get_by_email(db, email.strip())
    if user is None:
        raise UserNotFoundError()

    rejected = user.requires_approval and user.approval_status == ApprovalStatus.REJECTED
    try:
        user = await UserRepository.update(
            db,
            user,
            email_verified=True,
            is_active=not rejected,
            email_verification_token=None,
            email_verification_expires=None,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.warning(f"Email verification bypassed for user {user.id}")
    return user


# ============================================
# Current user
# ============================================


def get_me(user: User) -> CurrentUserResponse:
    return _current_user_response(user)


async def update_profile(
    db: AsyncSession,
    user: User,
    data: ProfileUpdateRequest,
) -> ProfileUpdateResponse:
    """
    Partially update the caller's account.

    Raises:
        EmailAlreadyExistsError: If the new email belongs to another user
        ValidationError: Missing/incorrect current password or short new password
        NoChangesError: If nothing differs from the stored values
    """
    updates: dict = {}

    name = (data.name or "").strip()
    if name and name != user.name:
        updates["name"] = name

    email = (data.email or "").strip()
    if email and email != user.email:
        if await UserRepository.email_exists(db, email, exclude_user_id=user.id):
            raise EmailAlreadyExistsError("Email is already taken")
        updates["email"] = email

    if data.new_password:
        if not data.current_password:
            raise ValidationError("Current password is required to change password")
        if not verify_password(data.current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")
        if len(data.new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        updates["password_hash"] = hash_password(data.new_password)

    if not updates:
        raise NoChangesError()

    try:
        user = await UserRepository.update(db, user, **updates)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Profile updated for user {user.id}: {sorted(updates)}")
    return ProfileUpdateResponse(user=_current_user_response(user))
