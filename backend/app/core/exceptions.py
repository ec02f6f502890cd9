"""
Domain exceptions for the briefings service.

Services raise these; the API routers translate them into HTTP responses.

Usage:
    from backend.app.core.exceptions import ResourceNotFoundError

    if incident is None:
        raise ResourceNotFoundError("Incident not found")
"""

from typing import Any, Dict, Optional


class BriefingsError(Exception):
    """Base exception for all briefings service errors"""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(BriefingsError):
    """A required field is missing or inconsistent. Never retried."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, code="VALIDATION_ERROR", details={"field": field} if field else None)
        self.field = field


class ResourceNotFoundError(BriefingsError):
    """The incident or briefing id does not exist"""

    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, code="NOT_FOUND")


class UnauthorizedError(BriefingsError):
    """Protected resource read without a valid access grant"""

    status_code = 401

    def __init__(self, message: str = "Unauthorized access"):
        super().__init__(message, code="UNAUTHORIZED")


class StoreFailureError(BriefingsError):
    """The underlying query interface failed"""

    status_code = 500

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, code="STORE_FAILURE")
