"""
Users module - Accounts, roles and approval state.
"""

from trustteams.modules.users.models import ApprovalStatus, User, UserRole
from trustteams.modules.users.repository import UserRepository

__all__ = ["User", "UserRole", "ApprovalStatus", "UserRepository"]
