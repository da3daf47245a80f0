"""
University Admin Schemas
"""

from pydantic import BaseModel


class ApprovalCounts(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    total: int = 0


class UniversityStatsResponse(BaseModel):
    """Headline numbers for a university's dashboard."""

    university_id: str
    students: ApprovalCounts
    academic_leaders: ApprovalCounts
    opportunities: int
    applications: int
