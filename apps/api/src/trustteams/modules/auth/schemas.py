"""
Authentication Schemas

Pydantic schemas for signup, login, email verification and profile updates.

Field presence rules (non-empty name/email/password, password length) are
enforced by the service so they surface as 400 errors with the platform's
error body rather than 422 validation errors.
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from trustteams.modules.universities.schemas import UniversityCreate
from trustteams.modules.users.models import ApprovalStatus, UserRole


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(None, max_length=200)
    first_name: str | None = Field(
        None, max_length=100, validation_alias=AliasChoices("first_name", "firstName")
    )
    last_name: str | None = Field(
        None, max_length=100, validation_alias=AliasChoices("last_name", "lastName")
    )
    email: str = Field("", max_length=255)
    password: str = ""

    # Explicit role wins over the looser userType hint
    role: str | None = Field(None, max_length=50)
    user_type: str | None = Field(
        None, max_length=50, validation_alias=AliasChoices("user_type", "userType")
    )

    university_id: str | None = Field(
        None, validation_alias=AliasChoices("university_id", "universityId")
    )
    institute_name: str | None = Field(
        None, max_length=255, validation_alias=AliasChoices("institute_name", "instituteName")
    )

    # university_admin signing up for an institution that is not registered yet
    university: UniversityCreate | None = None


class LoginRequest(BaseModel):
    """Login request schema."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class ResendVerificationRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)


class ProfileUpdateRequest(BaseModel):
    """Partial profile update. Omitted fields are left unchanged."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(None, max_length=200)
    email: str | None = Field(None, max_length=255)
    current_password: str | None = Field(
        None, validation_alias=AliasChoices("current_password", "currentPassword")
    )
    new_password: str | None = Field(
        None, validation_alias=AliasChoices("new_password", "newPassword")
    )


class PublicUser(BaseModel):
    """User projection safe to return to clients. Never includes credentials."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: UserRole
    approval_status: ApprovalStatus
    university_id: str | None = None
    institute_name: str | None = None


class CurrentUserResponse(PublicUser):
    """Full view of the caller's own account for GET /auth/me."""

    is_active: bool
    email_verified: bool
    last_login: datetime | None = None
    created_at: datetime | None = None


class SignupResponse(BaseModel):
    message: str
    user: PublicUser
    email_verification_sent: bool
    requires_approval: bool


class LoginResponse(BaseModel):
    """Login response schema."""

    message: str = "Login successful"
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: PublicUser


class MessageResponse(BaseModel):
    message: str


class VerifyEmailResponse(BaseModel):
    message: str
    email_verified: bool = True
    already_verified: bool = False
    # True when an already-verified user was sent a fresh link
    verification_resent: bool = False


class MeResponse(BaseModel):
    user: CurrentUserResponse


class ProfileUpdateResponse(BaseModel):
    message: str = "Profile updated successfully"
    user: CurrentUserResponse
