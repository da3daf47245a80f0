"""
Registration Requests module - Approval workflow for students and academic leaders.

Requests are created at signup and decided by a university administrator
through the university admin endpoints.
"""

from trustteams.modules.registration_requests.models import RegistrationRequest, RequestStatus

__all__ = ["RegistrationRequest", "RequestStatus"]
