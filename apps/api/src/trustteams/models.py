"""
Model registry.

Importing this module registers every table on ``Base.metadata``; Alembic
and anything that needs the full mapper configuration import it.
"""

from trustteams.core.database import Base
from trustteams.modules.applications.models import OpportunityApplication
from trustteams.modules.icm.models import IcmProfile
from trustteams.modules.opportunities.models import Opportunity, OpportunityAudit
from trustteams.modules.registration_requests.models import RegistrationRequest
from trustteams.modules.students.models import StudentProfile
from trustteams.modules.universities.models import University
from trustteams.modules.users.models import User

__all__ = [
    "Base",
    "University",
    "User",
    "RegistrationRequest",
    "Opportunity",
    "OpportunityAudit",
    "OpportunityApplication",
    "StudentProfile",
    "IcmProfile",
]
