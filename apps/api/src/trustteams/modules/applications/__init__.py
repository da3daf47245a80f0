"""
Applications module - Student applications to opportunities and their review.
"""

from trustteams.modules.applications.models import ApplicationStatus, OpportunityApplication
from trustteams.modules.applications.router import router

__all__ = ["ApplicationStatus", "OpportunityApplication", "router"]
