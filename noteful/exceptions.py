"""
Noteful Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions, one per failure kind the API exposes.
How:   Each class carries a message, an optional context dict, the HTTP status
       it maps to and a machine-readable error code. The global handler in
       `noteful.main` turns them into JSON error responses.
Who:   Raised by services and the auth dependency; caught by global handlers.

Exception Hierarchy:
    NotefulError (base)
    ├── ValidationError          → 400 Bad Request (malformed/missing input)
    ├── AuthenticationError      → 401 Unauthorized (no trusted identity)
    ├── ForbiddenError           → 403 Forbidden (write outside own boundary)
    ├── NotFoundError            → 404 Not Found (absent OR owned by someone else)
    ├── ConflictError            → 409 Conflict (per-owner uniqueness)
    ├── IntegrityError           → 422 Unprocessable (reference not owned/absent)
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── InternalError            → 500 Internal Server Error (generic message)

`context` is logged for operators. It is echoed back as `details` only for
the kinds where it helps the client fix the request (`expose_context`).
"""

from typing import Any, Dict, Iterable, Optional


class NotefulError(Exception):
    """
    Base exception for all Noteful application errors.

    Attributes:
        message:  User-facing error description (safe to return)
        context:  Additional debug info
    """

    status_code = 500
    error_code = "server_error"
    expose_context = False

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NotefulError):
    """
    Raised when client input is malformed or missing.

    Always detectable before the store is touched: missing title or name,
    ids that are not UUIDs, wrong field types, bad signup credentials.
    """

    status_code = 400
    error_code = "validation_error"
    expose_context = True

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(NotefulError):
    """No trusted identity: missing/invalid token or bad login credentials."""

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(NotefulError):
    """
    A well-formed request tried to act outside the caller's ownership
    boundary, e.g. creating on behalf of, or transferring to, another user.
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "Operation not permitted",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(NotefulError):
    """
    Raised when a syntactically valid id has no visible entity.

    Entities that exist but belong to another owner raise this too, with
    exactly the same message, so the response never leaks their existence.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class ConflictError(NotefulError):
    """A per-owner uniqueness invariant (folder/tag name, username) would break."""

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "name already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class IntegrityError(NotefulError):
    """
    A referenced folder or tag does not exist under the caller's ownership.

    `missing_ids` enumerates every offending id so the client can fix all of
    them in one round trip.
    """

    status_code = 422
    error_code = "integrity_error"
    expose_context = True

    def __init__(
        self,
        message: str = "referenced entity not found",
        field: Optional[str] = None,
        missing_ids: Optional[Iterable[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        self.missing_ids = [str(i) for i in (missing_ids or [])]
        if self.missing_ids:
            ctx["missing_ids"] = self.missing_ids
        super().__init__(message=message, context=ctx)
        self.field = field


class RateLimitExceededError(NotefulError):
    """Raised when a client exceeds the login attempt window."""

    status_code = 429
    error_code = "rate_limit_exceeded"
    expose_context = True

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many login attempts. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class InternalError(NotefulError):
    """
    Unexpected fault from a collaborator (store failure, serialization bug).

    The caller only ever sees "Internal Server Error"; the message and context
    given here go to the logs.
    """

    status_code = 500
    error_code = "internal_server_error"

    def __init__(
        self,
        message: str = "Internal Server Error",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
