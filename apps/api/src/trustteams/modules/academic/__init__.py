"""
Academic module - Academic leader views of students and postings.
"""

from trustteams.modules.academic.router import router

__all__ = ["router"]
