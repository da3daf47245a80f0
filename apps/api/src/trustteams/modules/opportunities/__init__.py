"""
Opportunities module - Posted internships, jobs and research positions.

Includes the audit trail, the auto-close job and the new-opportunity
student broadcast.
"""

from trustteams.modules.opportunities.models import (
    AuditAction,
    Opportunity,
    OpportunityAudit,
    OpportunityStatus,
    OpportunityType,
)
from trustteams.modules.opportunities.router import router

__all__ = [
    "AuditAction",
    "Opportunity",
    "OpportunityAudit",
    "OpportunityStatus",
    "OpportunityType",
    "router",
]
