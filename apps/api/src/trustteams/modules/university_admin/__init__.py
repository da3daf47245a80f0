"""
University admin module - An administrator's view of their own university.
"""

from trustteams.modules.university_admin.router import router

__all__ = ["router"]
