"""
MediCamp Backend - Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions, one per failure kind callers must be
       able to tell apart.
How:   Each exception carries a user-safe message and an optional context
       dict. Global handlers registered in main.py translate them into JSON
       error responses with the right HTTP status.
Who:   Raised by services, the authorization policy and middleware.

Exception Hierarchy:
    MediCampError (base)
    ├── ValidationError                → 400 Bad Request
    ├── UnauthenticatedError           → 401 Unauthorized
    ├── ForbiddenError                 → 403 Forbidden
    ├── NotFoundError                  → 404 Not Found
    │   └── NotRegisteredError         → 404 Not Found
    ├── ConflictError                  → 409 Conflict
    │   ├── DuplicateRegistrationError
    │   ├── InvalidTransitionError
    │   └── InvalidCountAdjustmentError
    ├── RateLimitExceededError         → 429 Too Many Requests
    └── UpstreamFailure
        ├── DatabaseError              → 500 Internal Server Error
        ├── PaymentServiceError        → 503 Service Unavailable
        └── CircuitBreakerOpenError    → 503 Service Unavailable
"""

from typing import Any, Dict, Optional


class MediCampError(Exception):
    """
    Base exception for all MediCamp application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for 5xx errors)
    """

    error_code = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MediCampError):
    """Client input failed a business rule that schema validation cannot express."""

    error_code = "validation_error"

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


class UnauthenticatedError(MediCampError):
    """No session token, or the token is invalid or expired."""

    error_code = "unauthenticated"

    def __init__(
        self,
        message: str = "unauthorized access",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(MediCampError):
    """
    The caller is authenticated but lacks the role or ownership the
    operation requires. Raised before any mutation happens.
    """

    error_code = "forbidden"

    def __init__(
        self,
        message: str = "forbidden access",
        required: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if required:
            ctx["required"] = required
        super().__init__(message=message, context=ctx)
        self.required = required


class NotFoundError(MediCampError):
    """A camp, registration or user does not exist."""

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


class NotRegisteredError(NotFoundError):
    """The caller has no registration for the camp they are acting on."""

    error_code = "not_registered"

    def __init__(self, camp_id: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(resource="registration", context=context)
        self.message = f"You are not registered for camp '{camp_id}'"
        self.context["camp_id"] = camp_id


class ConflictError(MediCampError):
    """The request is well formed but conflicts with the current state."""

    error_code = "conflict"


class DuplicateRegistrationError(ConflictError):
    """A registration for this (camp, participant) pair already exists."""

    error_code = "duplicate_registration"

    def __init__(self, camp_id: str, participant_email: str):
        super().__init__(
            message="You have already registered for this camp",
            context={"camp_id": camp_id, "participant_email": participant_email},
        )


class InvalidTransitionError(ConflictError):
    """The requested confirmation status change is not allowed."""

    error_code = "invalid_transition"

    def __init__(self, current: str, target: str):
        super().__init__(
            message=f"Cannot change confirmation status from '{current}' to '{target}'",
            context={"current": current, "target": target},
        )
        self.current = current
        self.target = target


class InvalidCountAdjustmentError(ConflictError):
    """A participant counter adjustment would drive the count below zero."""

    error_code = "invalid_count_adjustment"

    def __init__(self, camp_id: str, direction: str):
        super().__init__(
            message="Participant count cannot go below zero",
            context={"camp_id": camp_id, "direction": direction},
        )


class RateLimitExceededError(MediCampError):
    """Client sent too many requests within the rate limit window."""

    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class UpstreamFailure(MediCampError):
    """
    A collaborator (database or payment provider) was unreachable or errored.

    Never retried automatically by the service; retry policy belongs to
    the caller.
    """

    error_code = "upstream_failure"


class DatabaseError(UpstreamFailure):
    """
    A database statement failed unexpectedly.

    The message returned to the client is always generic; the context
    (statement, constraint name) is logged server-side only.
    """

    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PaymentServiceError(UpstreamFailure):
    """The payment provider rejected the call, timed out or was unreachable."""

    error_code = "payment_service_error"

    def __init__(
        self,
        message: str = "The payment service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(UpstreamFailure):
    """
    Raised while the payment circuit breaker is OPEN.

    CLOSED (normal) → failures increment counter
    → threshold reached → OPEN (reject all calls for recovery_time seconds)
    → timeout elapsed → HALF-OPEN (allow one test call)
    → success → CLOSED; failure → OPEN again
    """

    error_code = "service_unavailable"

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "The payment service is temporarily unavailable due to repeated failures. "
            f"Please try again in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
