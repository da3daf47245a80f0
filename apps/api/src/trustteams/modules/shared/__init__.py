"""
Shared building blocks for feature modules.
"""

from trustteams.modules.shared.errors import (
    ForbiddenError,
    ServiceError,
    ValidationError,
    internal_error,
    raise_http_error,
)
from trustteams.modules.shared.models import BaseModel, pg_enum

__all__ = [
    "BaseModel",
    "pg_enum",
    "ServiceError",
    "ValidationError",
    "ForbiddenError",
    "raise_http_error",
    "internal_error",
]
