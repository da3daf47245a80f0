"""
Students module - Student CV profiles.
"""

from trustteams.modules.students.models import StudentProfile
from trustteams.modules.students.router import router

__all__ = ["StudentProfile", "router"]
