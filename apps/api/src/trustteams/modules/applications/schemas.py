"""
Application Schemas
"""

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from trustteams.modules.applications.models import ApplicationStatus
from trustteams.modules.opportunities.models import OpportunityStatus, OpportunityType

# ============================================
# Request Schemas
# ============================================


class ApplyRequest(BaseModel):
    """Body of POST /applications/apply."""

    model_config = ConfigDict(populate_by_name=True)

    opportunity_id: UUID = Field(validation_alias=AliasChoices("opportunity_id", "opportunityId"))
    cover_letter: str | None = Field(
        None,
        max_length=10000,
        validation_alias=AliasChoices("cover_letter", "coverLetter"),
    )
    gpa: float | None = Field(None, ge=0, le=10)
    expected_graduation: str | None = Field(
        None,
        max_length=50,
        validation_alias=AliasChoices("expected_graduation", "expectedGraduation"),
    )
    relevant_courses: str | None = Field(
        None,
        validation_alias=AliasChoices("relevant_courses", "relevantCourses"),
    )
    skills: str | None = None
    experience_summary: str | None = Field(
        None,
        validation_alias=AliasChoices("experience_summary", "experienceSummary"),
    )


class StatusUpdateRequest(BaseModel):
    """
    Body of PUT /applications/{id}/status.

    ``status`` is a plain string so unknown values get the INVALID_STATUS error.
    """

    model_config = ConfigDict(populate_by_name=True)

    status: str
    review_notes: str | None = Field(
        None,
        max_length=5000,
        validation_alias=AliasChoices("review_notes", "reviewNotes"),
    )


# ============================================
# Response Schemas
# ============================================


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    opportunity_id: str
    student_id: str
    status: ApplicationStatus
    application_date: datetime | None = None
    cover_letter: str | None = None
    gpa: float | None = None
    expected_graduation: str | None = None
    relevant_courses: str | None = None
    skills: str | None = None
    experience_summary: str | None = None
    review_notes: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None


class ApplicantApplication(ApplicationResponse):
    """Application joined with the applicant's identity."""

    student_name: str
    student_email: str
    student_institute_name: str | None = None
    student_university_id: str | None = None


class OpportunitySummary(BaseModel):
    id: str
    title: str


class OpportunityApplicationsResponse(BaseModel):
    opportunity: OpportunitySummary
    applications: list[ApplicantApplication]


class StudentApplication(ApplicationResponse):
    """Application joined with the opportunity and its poster."""

    opportunity_title: str
    opportunity_type: OpportunityType
    opportunity_status: OpportunityStatus
    opportunity_description: str | None = None
    opportunity_location: str | None = None
    opportunity_stipend: str | None = None
    opportunity_duration: str | None = None
    opportunity_closing_date: datetime | None = None
    posted_by_name: str | None = None
    posted_by_email: str | None = None


class StudentApplicationsResponse(BaseModel):
    applications: list[StudentApplication]


class ApplyResponse(BaseModel):
    message: str
    application_id: str


class StatusUpdateResponse(BaseModel):
    message: str
    application_id: str
    new_status: ApplicationStatus


class WithdrawResponse(BaseModel):
    message: str
    application_id: str
