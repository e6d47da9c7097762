"""
Shared error handling for Schooly Access Layer.

Every error carries a stable ``code`` and the HTTP status the base service
maps it to. Authorization failures share one generic public message so a
response never reveals whether a resource exists in another tenant.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from .logging import get_request_id


ACCESS_DENIED_MESSAGE = "Access denied"


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class SchoolyException(Exception):
    """Base exception for Access Layer services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def public_details(self) -> Dict[str, Any]:
        """Details that may be returned to the caller."""
        return self.details

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=get_request_id(),
            code=self.code,
            message=self.message,
            details=self.public_details()
        )


class Unauthenticated(SchoolyException):
    """No valid session."""

    status_code = 401

    def __init__(self, message: str = "Authentication required", details: Optional[Dict[str, Any]] = None):
        super().__init__("UNAUTHENTICATED", message, details)


class AuthorizationError(SchoolyException):
    """Authenticated caller may not perform the action."""

    status_code = 403

    def public_details(self) -> Dict[str, Any]:
        return {}


class InsufficientPermission(AuthorizationError):
    """Same tenant, missing grant."""

    def __init__(self, category: str = "", action: str = "", details: Optional[Dict[str, Any]] = None):
        self.category = category
        self.action = action
        super().__init__(
            "INSUFFICIENT_PERMISSION",
            ACCESS_DENIED_MESSAGE,
            {"category": category, "action": action, **(details or {})}
        )


class CrossTenantAccessDenied(AuthorizationError):
    """Resource belongs to another tenant."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__("CROSS_TENANT_ACCESS_DENIED", ACCESS_DENIED_MESSAGE, details)


class NoActiveSubscription(SchoolyException):
    """Tenant has no subscription row."""

    status_code = 404

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(
            "NO_ACTIVE_SUBSCRIPTION",
            "No active subscription for this school",
            {"tenant_id": tenant_id}
        )


class UnknownFeature(SchoolyException):
    status_code = 422

    def __init__(self, feature: str):
        self.feature = feature
        super().__init__("UNKNOWN_FEATURE", f"Unknown feature '{feature}'", {"feature": feature})


class UnknownLimit(SchoolyException):
    status_code = 422

    def __init__(self, limit: str):
        self.limit = limit
        super().__init__("UNKNOWN_LIMIT", f"Unknown limit '{limit}'", {"limit": limit})


class ConcurrentModification(SchoolyException):
    """Optimistic update precondition no longer holds."""

    status_code = 409

    def __init__(self, message: str = "Plan changed, please retry", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONCURRENT_MODIFICATION", message, details)


class DataUnavailable(SchoolyException):
    """Transient store failure."""

    status_code = 503

    def __init__(self, message: str = "Data store unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("DATA_UNAVAILABLE", message, details)

    def public_details(self) -> Dict[str, Any]:
        return {}


class ValidationError(SchoolyException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(SchoolyException):
    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class DataIntegrityError(SchoolyException):
    """Stored data violates a closed set or a reference."""

    status_code = 500

    def __init__(self, message: str = "Data integrity error", details: Optional[Dict[str, Any]] = None):
        super().__init__("DATA_INTEGRITY_ERROR", message, details)

    def public_details(self) -> Dict[str, Any]:
        return {}
