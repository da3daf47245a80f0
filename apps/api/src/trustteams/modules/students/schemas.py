"""
Student Profile Schemas

Section items accept both snake_case and camelCase keys and keep unknown
keys, so older clients can store fields this API doesn't model yet.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class _SectionItem(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class SkillItem(_SectionItem):
    name: str = Field(..., min_length=1, max_length=100)
    level: str | None = None

    @model_validator(mode="before")
    @classmethod
    def accept_plain_name(cls, value: Any) -> Any:
        """Allow ``"Python"`` as shorthand for ``{"name": "Python"}``."""
        if isinstance(value, str):
            return {"name": value}
        return value


class ExperienceItem(_SectionItem):
    title: str = Field(..., min_length=1, max_length=200)
    company: str | None = None
    location: str | None = None
    start_date: str | None = Field(None, validation_alias=AliasChoices("start_date", "startDate"))
    end_date: str | None = Field(None, validation_alias=AliasChoices("end_date", "endDate"))
    current: bool = False
    description: str | None = None


class EducationItem(_SectionItem):
    institution: str = Field(..., min_length=1, max_length=200)
    degree: str | None = None
    field_of_study: str | None = Field(
        None,
        validation_alias=AliasChoices("field_of_study", "fieldOfStudy"),
    )
    start_date: str | None = Field(None, validation_alias=AliasChoices("start_date", "startDate"))
    end_date: str | None = Field(None, validation_alias=AliasChoices("end_date", "endDate"))
    grade: str | None = None
    description: str | None = None


class ProjectItem(_SectionItem):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    url: str | None = None
    technologies: list[str] = []


class StudentProfileUpdate(BaseModel):
    """
    Body of PUT /student/profile.

    Only the fields present in the body change. A section that is present
    replaces the stored one entirely.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(None, min_length=1, max_length=255)
    github_url: str | None = Field(
        None,
        max_length=512,
        validation_alias=AliasChoices("github_url", "githubUrl"),
    )
    linkedin_url: str | None = Field(
        None,
        max_length=512,
        validation_alias=AliasChoices("linkedin_url", "linkedinUrl"),
    )
    website_url: str | None = Field(
        None,
        max_length=512,
        validation_alias=AliasChoices("website_url", "websiteUrl"),
    )
    resume_url: str | None = Field(
        None,
        max_length=512,
        validation_alias=AliasChoices("resume_url", "resumeUrl"),
    )
    summary: str | None = Field(None, max_length=5000)
    skills: list[SkillItem] | None = None
    experiences: list[ExperienceItem] | None = None
    education: list[EducationItem] | None = None
    projects: list[ProjectItem] | None = None


class StudentProfileResponse(BaseModel):
    user_id: str
    name: str
    email: str
    institute_name: str | None = None
    university_id: str | None = None
    github_url: str = ""
    linkedin_url: str = ""
    website_url: str = ""
    resume_url: str = ""
    summary: str = ""
    skills: list[dict[str, Any]] = []
    experiences: list[dict[str, Any]] = []
    education: list[dict[str, Any]] = []
    projects: list[dict[str, Any]] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class StudentProfileEnvelope(BaseModel):
    profile: StudentProfileResponse


class StudentProfileUpdateResponse(BaseModel):
    message: str
    profile: StudentProfileResponse
