"""
Registration Request Schemas
"""

from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from trustteams.modules.registration_requests.models import RequestStatus
from trustteams.modules.users.models import UserRole


class DecisionAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class RegistrationRequestItem(BaseModel):
    """Pending request joined with the requester's identity."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    university_id: str
    institute_name: str | None = None
    role: UserRole
    status: RequestStatus
    user_name: str
    user_email: str
    created_at: datetime | None = None


class RegistrationRequestListResponse(BaseModel):
    requests: list[RegistrationRequestItem]


class DecisionRequest(BaseModel):
    """Body of POST /university/registration-requests/{id}/decision."""

    model_config = ConfigDict(populate_by_name=True)

    action: DecisionAction
    rejection_reason: str | None = Field(
        None,
        max_length=2000,
        validation_alias=AliasChoices("rejection_reason", "rejectionReason"),
    )


class DecisionResponse(BaseModel):
    message: str
    request_id: str
    user_id: str
    status: RequestStatus
