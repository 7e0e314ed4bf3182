"""
Application Exceptions

Every service operation reports failures with one of these exceptions.
Store-specific faults (SQLAlchemy errors, pydantic validation errors) are
caught at the service boundary and re-raised as a member of this taxonomy,
so routers and exception handlers only ever see ApiError subclasses.

Taxonomy:
    BadRequestError      400  malformed identifier or input shape
    UnauthorizedError    401  missing, invalid or expired credential
    ForbiddenError       403  valid credential, insufficient role
    NotFoundError        404  no matching record
    ConflictError        409  uniqueness violation
    ValidationError      422  constraint violation (field-level details)
    InternalError        500  unexpected store/runtime fault

The HTTP rendering of these exceptions lives in app.main.
"""

from typing import Any


class ApiError(Exception):
    """Base exception carrying an HTTP status code and a client message."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(ApiError):
    status_code = 400
    default_message = "Bad Request"


class UnauthorizedError(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class TokenExpiredError(UnauthorizedError):
    """The token signature is valid but its exp claim is in the past."""

    default_message = "Token has expired"


class TokenInvalidError(UnauthorizedError):
    """Bad signature, issuer, audience or shape."""

    default_message = "Token is invalid"


class ForbiddenError(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Conflict"


class ValidationError(ApiError):
    """
    Schema constraint violation.

    errors holds one {"field": ..., "message": ...} entry per violation.
    """

    status_code = 422
    default_message = "Validation Error"

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ):
        self.errors = errors or []
        if message is None and self.errors:
            message = ", ".join(error["message"] for error in self.errors)
        super().__init__(message)


class InternalError(ApiError):
    """
    Unexpected fault.

    detail keeps the original error text for server-side logs; it is only
    sent to clients outside production.
    """

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None, detail: str | None = None):
        self.detail = detail
        super().__init__(message)
