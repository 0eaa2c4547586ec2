"""
ServiceDesk Exception Hierarchy

Every error carries an English message, its Arabic counterpart, a
machine-readable code and optional details. The HTTP layer renders them via
servicedesk.core.error_handler.

Exception Hierarchy:
    ServiceDeskError (500)
    ├── BadRequestError (400)
    │   └── InvalidStatusTransitionError
    ├── UnauthorizedError (401)
    ├── ForbiddenError (403)
    │   └── PermissionDeniedError
    ├── NotFoundError (404)
    ├── ConflictError (409)
    └── PayloadTooLargeError (413)
"""
from typing import Optional, Dict, Any, Iterable

from servicedesk.core.i18n import translate


class ServiceDeskError(Exception):
    """
    Base exception for all ServiceDesk errors.

    Attributes:
        message: English error description
        message_ar: Arabic error description
        code: Machine-readable error code for programmatic handling
        details: Extra fields merged into the response body
    """

    status_code: int = 500
    default_code: str = "internal_error"
    default_message: str = "Internal Server Error"

    def __init__(
        self,
        message: Optional[str] = None,
        message_ar: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.message_ar = message_ar or translate(self.message)
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the bilingual response body."""
        body = {
            "status_code": self.status_code,
            "error": self.code,
            "message": self.message,
            "message_ar": self.message_ar,
        }
        body.update(self.details)
        return body

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# CLIENT ERRORS
# =============================================================================

class BadRequestError(ServiceDeskError):
    status_code = 400
    default_code = "bad_request"
    default_message = "Bad Request"


class UnauthorizedError(ServiceDeskError):
    """Missing, invalid or expired credentials."""
    status_code = 401
    default_code = "unauthorized"
    default_message = "Unauthorized"


class ForbiddenError(ServiceDeskError):
    """Authenticated, but not allowed."""
    status_code = 403
    default_code = "forbidden"
    default_message = "Forbidden"


class PermissionDeniedError(ForbiddenError):
    """Effective permission set lacks one or more required permissions."""
    default_code = "permission_denied"
    default_message = "Insufficient permissions"

    def __init__(self, required: Iterable[str], missing: Iterable[str] = (), **kwargs):
        details = kwargs.pop("details", {})
        details.update({
            "required_permissions": list(required),
            "missing_permissions": list(missing),
        })
        super().__init__(details=details, **kwargs)


class NotFoundError(ServiceDeskError):
    status_code = 404
    default_code = "not_found"
    default_message = "Resource not found"


class ConflictError(ServiceDeskError):
    status_code = 409
    default_code = "conflict"
    default_message = "Conflict"


class PayloadTooLargeError(ServiceDeskError):
    status_code = 413
    default_code = "payload_too_large"
    default_message = "File is too large"


# =============================================================================
# WORKFLOW ERRORS
# =============================================================================

class InvalidStatusTransitionError(BadRequestError):
    """
    Requested status change is not an edge of the transition table.

    Carries the destinations that are legal from the current status so the
    caller can correct itself.
    """
    default_code = "invalid_status_transition"

    def __init__(self, current_status: str, requested_status: str, allowed: Iterable[str]):
        allowed = list(allowed)
        if allowed:
            message = (
                f"Invalid status transition from {current_status} to {requested_status}. "
                f"Allowed transitions: {', '.join(allowed)}"
            )
            message_ar = (
                f"لا يمكن تغيير الحالة من {current_status} إلى {requested_status}. "
                f"الحالات المسموحة: {'، '.join(allowed)}"
            )
        else:
            message = (
                f"Invalid status transition from {current_status} to {requested_status}. "
                f"{current_status} is a final status"
            )
            message_ar = (
                f"لا يمكن تغيير الحالة من {current_status} إلى {requested_status}. "
                f"الحالة {current_status} نهائية"
            )
        super().__init__(
            message,
            message_ar=message_ar,
            details={
                "current_status": current_status,
                "requested_status": requested_status,
                "allowed_transitions": allowed,
            },
        )
        self.current_status = current_status
        self.requested_status = requested_status
        self.allowed_transitions = allowed
