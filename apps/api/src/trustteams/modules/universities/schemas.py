"""
University Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UniversityCreate(BaseModel):
    """Request body for creating a university."""

    name: str = Field(..., min_length=1, max_length=200)
    domain: str = Field(..., min_length=3, max_length=255, pattern=r"^[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
    address: str | None = Field(None, max_length=500)
    website: str | None = Field(None, max_length=255)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=20)
    established_year: int | None = Field(None, ge=1000, le=2100)


class UniversityResponse(BaseModel):
    """University as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    domain: str
    address: str | None = None
    website: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    established_year: int | None = None
    is_active: bool
    created_at: datetime | None = None


class UniversityListResponse(BaseModel):
    universities: list[UniversityResponse]
