"""
RentCar Backend — Custom Exception Hierarchy
==============================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages. They replace generic Python
       exceptions that would leak internal details to the client.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services, security dependencies and middleware.
When:  During request processing when recoverable errors occur.

Exception Hierarchy:
    RentCarError (base)
    ├── ValidationError          → 400 Bad Request (business rule rejected input)
    ├── AuthenticationError      → 401 Unauthorized (missing/invalid credentials)
    ├── PermissionDeniedError    → 403 Forbidden (authenticated, not allowed)
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict (duplicate email, second review…)
    ├── DatabaseError            → 500 Internal Server Error
    └── RateLimitExceededError   → 429 Too Many Requests

Schema-level problems (wrong types, out-of-range fields) never reach this
module: FastAPI rejects them with its own 422 response before a service runs.
"""

from typing import Any, Dict, Optional


class RentCarError(Exception):
    """
    Base exception for all RentCar application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional info; returned as `details` for 4xx, logged only for 5xx
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(RentCarError):
    """
    Raised when a request is well-formed but breaks a business rule.

    When:    Booking dates in the past, overlapping booking, paying too little,
             reviewing a car never rented, starting an unpaid rental.
    HTTP:    400 Bad Request
    """

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


class AuthenticationError(RentCarError):
    """
    Raised when the caller's identity cannot be established.

    When:    Missing bearer token, expired/forged token, wrong password,
             locked admin account.
    HTTP:    401 Unauthorized (with WWW-Authenticate: Bearer)
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(RentCarError):
    """
    Raised when an authenticated caller acts outside their role or ownership.

    When:    A customer listing a car, a renter starting their own rental,
             editing someone else's review.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(RentCarError):
    """
    Raised when a requested resource does not exist.

    Why a custom exception:
        SQLAlchemy returns None for missing records (not an exception).
        We convert None → NotFoundError in the service layer to keep
        HTTP concerns out of the service logic while still enabling
        the correct status code in the response.
    HTTP:    404 Not Found
    """

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


class ConflictError(RentCarError):
    """
    Raised when a write would violate a uniqueness rule.

    When:    Registering an email/phone already in use, reviewing the same
             car twice, creating a second ranking of the same type for a user.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "Resource already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class DatabaseError(RentCarError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The message returned to the client is always generic.
        Detailed error info (SQL query, constraint name, etc.) is logged
        server-side only.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(RentCarError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    Response includes:
        - retry_after: Seconds until the rate limit window resets
        - Retry-After header for HTTP-compliant clients
    HTTP:    429 Too Many Requests
    """

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
