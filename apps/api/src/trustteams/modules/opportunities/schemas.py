"""
Opportunity Schemas

Pydantic models for opportunity request/response validation.

Type, status and closing date arrive as plain strings and are validated by
the service so that bad values get the same 400 body as every other
domain error.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from trustteams.modules.opportunities.models import (
    AuditAction,
    OpportunityStatus,
    OpportunityType,
)

# ============================================
# Request Schemas
# ============================================


class OpportunityWrite(BaseModel):
    """
    Full set of editable opportunity fields.

    Used for both create and update; an update replaces every field.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field("", max_length=255)
    type: str = ""
    description: str = ""
    requirements: str | None = None
    stipend: str | None = Field(None, max_length=100)
    duration: str | None = Field(None, max_length=100)
    location: str | None = Field(None, max_length=255)
    status: str = OpportunityStatus.OPEN.value
    closing_date: str | None = Field(
        None,
        validation_alias=AliasChoices("closing_date", "closingDate", "deadline"),
    )
    contact_email: str | None = Field(
        None,
        max_length=255,
        validation_alias=AliasChoices("contact_email", "contactEmail"),
    )
    contact_phone: str | None = Field(
        None,
        max_length=30,
        validation_alias=AliasChoices("contact_phone", "contactPhone"),
    )


# ============================================
# Response Schemas
# ============================================


class OpportunityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    type: OpportunityType
    description: str
    requirements: str | None = None
    stipend: str | None = None
    duration: str | None = None
    location: str | None = None
    status: OpportunityStatus
    closing_date: datetime | None = None
    posted_by: str | None = None
    posted_by_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    pages: int


class OpportunityListResponse(BaseModel):
    opportunities: list[OpportunityResponse]
    pagination: Pagination


class OpportunityCollectionResponse(BaseModel):
    """Unpaginated list, used by the role-scoped views."""

    opportunities: list[OpportunityResponse]


class OpportunityDetailResponse(BaseModel):
    opportunity: OpportunityResponse


class OpportunityMutationResponse(BaseModel):
    message: str
    opportunity: OpportunityResponse


class MessageResponse(BaseModel):
    message: str


class AuditEntryResponse(BaseModel):
    id: str
    opportunity_id: str
    action: AuditAction
    changed_by: str | None = None
    changed_by_name: str | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    created_at: datetime | None = None


class AuditTrailResponse(BaseModel):
    audit_trail: list[AuditEntryResponse]


class AutoCloseResponse(BaseModel):
    message: str
    closed_count: int
    closed_ids: list[str] = []
