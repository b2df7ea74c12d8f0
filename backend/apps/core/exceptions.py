"""
Unified exception hierarchy
===========================
Every business failure raised by a service derives from BaseAppException.
The DRF exception handler only knows this base class and renders it into
one JSON shape.

Rules:
- services raise the matching exception subclass
- views never try/except business errors
- the exception handler turns them into responses
- clients switch on ``code``, which is stable across releases
"""


class BaseAppException(Exception):
    """
    Base class for all application exceptions.

    Rendered as:
    {
        "type": "error",
        "code": "SERIES_COMPLETED",          # machine-readable
        "message": "Human readable summary",
        "detail": ["specific detail 1", "specific detail 2"]
    }
    """
    type = "error"
    code = "UNKNOWN_ERROR"
    http_status = 500
    message = "An unexpected error occurred"

    def __init__(self, message=None, detail=None, code=None):
        if message:
            self.message = message
        if code:
            self.code = code

        # detail is always a list so clients can iterate it
        if detail is None:
            self.detail = []
        elif isinstance(detail, str):
            self.detail = [detail]
        else:
            self.detail = list(detail)

        super().__init__(self.message)

    def to_dict(self):
        return {
            "type": self.type,
            "code": self.code,
            "message": self.message,
            "detail": self.detail,
        }


class AppValidationError(BaseAppException):
    """
    Malformed or out-of-range input, fixable by the caller.

    ``detail`` enumerates every violated constraint, not just the first.
    Named AppValidationError to avoid clashing with DRF's ValidationError.
    """
    code = "VALIDATION_ERROR"
    http_status = 400
    message = "Input validation failed"


class NotFoundError(BaseAppException):
    """Entity is missing, inactive, or owned by another instructor."""
    code = "NOT_FOUND"
    http_status = 404
    message = "Resource not found"


class ConflictError(BaseAppException):
    """
    The operation would violate a domain invariant.

    e.g. no series assigned, series already completed, series in use.
    """
    code = "CONFLICT"
    http_status = 409
    message = "Operation conflicts with the current state"


class ConcurrencyError(BaseAppException):
    """
    Lost a per-patient write race.

    Clients should show "try again"; the server never retries on its own
    because a retry could double-count a session.
    """
    code = "CONCURRENT_MODIFICATION"
    http_status = 409
    message = "The record was modified concurrently, please try again"


class PermissionDeniedError(BaseAppException):
    """The principal's role does not allow this operation."""
    code = "PERMISSION_DENIED"
    http_status = 403
    message = "You do not have permission to perform this action"
