"""
DevConnector Backend: Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every failure a service can report.
How:   Each exception carries a user-facing message, an optional context dict
       (logged, never returned unless the handler chooses to), a default HTTP
       status and a machine-readable error code. Global handlers registered in
       main.py turn them into JSON responses.
Who:   Raised by services and the Auth Gate; caught by the global handlers.

Exception Hierarchy:
    DevConnectorError (base)
    ├── ValidationError          → 400 (per-field messages in `errors`)
    ├── DuplicateUserError       → 400
    ├── InvalidCredentialsError  → 401 (same error for unknown email and bad password)
    ├── TokenError               → never reaches HTTP; the Auth Gate converts it
    │   ├── InvalidTokenError
    │   └── ExpiredTokenError
    ├── UnauthenticatedError     → 401
    ├── ForbiddenError           → 403
    ├── NotFoundError            → 404
    ├── AlreadyLikedError        → 400
    ├── NotLikedError            → 400
    ├── ConflictError            → 409 (lost an optimistic-concurrency race)
    ├── StorageError             → 500 (generic message, details only in logs)
    ├── ExternalServiceError     → 503
    └── CircuitBreakerOpenError  → 503 (+ Retry-After)
"""

from typing import Any, Dict, Optional


class DevConnectorError(Exception):
    """
    Base exception for all DevConnector application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        context:     Additional debug info (logged, NOT returned to client)
        status_code: HTTP status used by the global handler
        error_code:  Machine-readable code placed in the `error` field
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DevConnectorError):
    """
    Raised when client input fails validation.

    `errors` maps each offending field to its message so the client can show
    them next to the form inputs:

        {
            "error": "validation_error",
            "message": "Status is required",
            "details": {"errors": {"status": "Status is required",
                                   "skills": "Skills is a required field"}}
        }
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        errors: Optional[Dict[str, str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.errors: Dict[str, str] = dict(errors or {})
        if field and field not in self.errors:
            self.errors[field] = message
        if self.errors and message == "Validation failed":
            message = next(iter(self.errors.values()))
        super().__init__(message=message, context=context)
        self.field = field

    @classmethod
    def from_errors(cls, errors: Dict[str, str]) -> "ValidationError":
        """Build one exception out of several field failures."""
        return cls(errors=errors)


class DuplicateUserError(DevConnectorError):
    """Raised when registering an email that already has an account."""

    status_code = 400
    error_code = "user_exists"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="User already exists", context=context)


class InvalidCredentialsError(DevConnectorError):
    """
    Raised on failed login.

    The same message is used for an unknown email and for a wrong password
    so the response never reveals which one was wrong.
    """

    status_code = 401
    error_code = "invalid_credentials"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid credentials", context=context)


class TokenError(DevConnectorError):
    """Base for bearer token verification failures."""

    status_code = 401
    error_code = "invalid_token"


class InvalidTokenError(TokenError):
    """Token is malformed, wrongly signed or lacks a user identifier."""

    def __init__(self, message: str = "Token is not valid", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


class ExpiredTokenError(TokenError):
    """Token signature is fine but its `exp` claim is in the past."""

    error_code = "token_expired"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Token has expired", context=context)


class UnauthenticatedError(DevConnectorError):
    """
    Raised by the Auth Gate when a protected operation is called without a
    usable token. Missing, malformed and expired tokens all end up here.
    """

    status_code = 401
    error_code = "unauthenticated"

    def __init__(
        self,
        message: str = "No valid token, authorization denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(DevConnectorError):
    """Raised when the caller does not own the post or comment they try to remove."""

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "User not authorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(DevConnectorError):
    """
    Raised when a requested resource does not exist.

    Services convert SQLAlchemy's `None` results (and misses inside embedded
    lists) into this exception.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class AlreadyLikedError(DevConnectorError):
    """The user is already in the post's like list."""

    status_code = 400
    error_code = "already_liked"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Post already liked", context=context)


class NotLikedError(DevConnectorError):
    """The user is not in the post's like list."""

    status_code = 400
    error_code = "not_liked"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Post has not yet been liked", context=context)


class ConflictError(DevConnectorError):
    """
    Raised when a guarded update lost a race.

    Profiles and posts carry a version counter; an UPDATE whose version no
    longer matches affects zero rows and SQLAlchemy reports it. The client
    can re-read and retry.
    """

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "The resource was modified concurrently. Please retry.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageError(DevConnectorError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the original
    exception type is kept in `context` for the server log.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ExternalServiceError(DevConnectorError):
    """GitHub could not be reached after all retries."""

    status_code = 503
    error_code = "external_service_error"

    def __init__(
        self,
        message: str = "GitHub is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(DevConnectorError):
    """
    Raised when the GitHub circuit breaker is OPEN.

    After `cb_failure_threshold` consecutive failures, lookups are rejected
    immediately until `cb_recovery_timeout` seconds have passed.
    """

    status_code = 503
    error_code = "service_unavailable"

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "GitHub lookups are temporarily disabled after repeated failures. "
            f"Retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
