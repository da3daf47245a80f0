"""
ICM module - Company profile and posting views for industry/company managers.
"""

from trustteams.modules.icm.models import IcmProfile
from trustteams.modules.icm.router import router

__all__ = ["IcmProfile", "router"]
