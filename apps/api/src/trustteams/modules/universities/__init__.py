"""
Universities module - Institutions users register against.
"""

from trustteams.modules.universities.models import University
from trustteams.modules.universities.repository import UniversityRepository
from trustteams.modules.universities.router import router

__all__ = ["University", "UniversityRepository", "router"]
