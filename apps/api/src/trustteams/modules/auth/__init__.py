"""
Auth module - Signup, login, email verification and account profile.
"""

from trustteams.modules.auth.router import router

__all__ = ["router"]
