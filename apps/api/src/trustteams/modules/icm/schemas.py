"""
ICM Schemas

Company profile sections accept camelCase or snake_case keys on input and
are always returned in snake_case. Missing keys take the defaults below.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from trustteams.modules.applications.schemas import StudentApplication
from trustteams.modules.students.schemas import StudentProfileResponse
from trustteams.modules.users.models import ApprovalStatus, UserRole


class _Section(BaseModel):
    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel),
        populate_by_name=True,
    )


class SocialMedia(_Section):
    linkedin: str = ""
    twitter: str = ""
    instagram: str = ""


class CompanySection(_Section):
    name: str = "Company Name"
    logo_url: str = ""
    industry_type: str = "Information Technology"
    overview: str = ""
    year_established: int | None = Field(None, ge=1000, le=9999)
    headquarters_location: str = ""
    website_url: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    office_address: str = ""
    size: str = ""
    branches_locations: str = ""
    key_clients_partners: str = ""
    services_products: str = ""
    certifications_accreditations: str = ""
    annual_revenue: str = ""
    employee_count_range: str = ""
    company_type: str = "sme"
    primary_markets: str = ""
    social_media: SocialMedia = SocialMedia()


class CultureSection(_Section):
    mission: str = ""
    vision: str = ""
    core_values: str = ""
    diversity_inclusion: str = ""
    csr_initiatives: str = ""


class RecruitmentSection(_Section):
    hiring_status: str = "actively_hiring"
    opportunity_types: list[str] = []
    application_process: str = ""
    employee_benefits: str = ""


class HighlightsSection(_Section):
    achievements: str = ""
    success_stories: str = ""
    press_mentions: str = ""
    photo_gallery: list[str] = []


class PeopleSection(_Section):
    leadership: list[dict[str, Any]] = []
    employees_on_platform: int = Field(0, ge=0)


class IcmProfileUpdate(BaseModel):
    """
    Body of PUT /icm/profile.

    ``name`` and ``email`` are required (checked by the service so the
    error matches the rest of the API). Omitted sections keep their
    stored value.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    email: str = ""
    institute_name: str | None = Field(
        None,
        max_length=255,
        validation_alias=AliasChoices("institute_name", "instituteName"),
    )
    company: CompanySection | None = None
    culture: CultureSection | None = None
    recruitment: RecruitmentSection | None = None
    highlights: HighlightsSection | None = None
    people: PeopleSection | None = None


class IcmProfileResponse(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    approval_status: ApprovalStatus
    is_active: bool
    university_id: str | None = None
    institute_name: str | None = None
    last_login: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    company: CompanySection
    culture: CultureSection
    recruitment: RecruitmentSection
    highlights: HighlightsSection
    people: PeopleSection


class IcmStatsResponse(BaseModel):
    total_opportunities: int
    total_applications: int
    recent_activity: int


class IcmStudentProfileResponse(BaseModel):
    """A student's CV plus their applications to the caller's postings."""

    student: StudentProfileResponse
    applications: list[StudentApplication]
