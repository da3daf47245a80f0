"""
User Schemas

Projections of user accounts shared by the role-scoped views.
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from trustteams.modules.users.models import ApprovalStatus, UserRole


class UserSummary(BaseModel):
    """User as listed by academic, university and ICM views. Never includes secrets."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: UserRole
    approval_status: ApprovalStatus
    is_active: bool
    email_verified: bool
    university_id: str | None = None
    institute_name: str | None = None
    created_at: datetime | None = None


class UserDetail(UserSummary):
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    last_login: datetime | None = None
    updated_at: datetime | None = None


class UserListResponse(BaseModel):
    users: list[UserSummary]


class UserUpdateRequest(BaseModel):
    """Administrative edit of a user in the same university. Omitted fields are unchanged."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(None, min_length=1, max_length=200)
    email: EmailStr | None = None
    institute_name: str | None = Field(
        None,
        max_length=255,
        validation_alias=AliasChoices("institute_name", "instituteName"),
    )
    is_active: bool | None = Field(None, validation_alias=AliasChoices("is_active", "isActive"))
