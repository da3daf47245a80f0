"""
Service-layer error base classes and their HTTP translation.

Feature services raise subclasses of ServiceError; routers translate them with
raise_http_error() so every error body has the same shape:

    {"error": "<ERROR_CODE>", "message": "<human readable>", ...extra}
"""

from typing import Any, NoReturn

from fastapi import HTTPException, status


class ServiceError(Exception):
    """Base exception for all domain errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 400,
        extra: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.extra = extra or {}
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        return {"error": self.error_code, "message": self.message, **self.extra}


class ValidationError(ServiceError):
    """Malformed or missing input that Pydantic cannot catch on its own."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="VALIDATION_ERROR", status_code=400)


class ForbiddenError(ServiceError):
    """Authenticated caller is not allowed to perform the action."""

    def __init__(self, message: str = "You do not have permission to perform this action."):
        super().__init__(message=message, error_code="FORBIDDEN", status_code=403)


def raise_http_error(e: ServiceError) -> NoReturn:
    """Convert a service error to an HTTPException."""
    raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from e


def internal_error() -> HTTPException:
    """Generic 500 for unexpected failures. The caller logs the original exception."""
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )
