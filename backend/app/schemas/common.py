"""
RentCar Backend — Shared Response Schemas
===========================================

What:  Response models reused by every router: the error envelope, the
       health payload and a plain acknowledgement message.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "validation_error",
            "message": "Car is not available for the selected dates",
            "details": {"field": "start_date"},
            "request_id": "3f9a2c1b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


class MessageResponse(BaseModel):
    message: str


# Reused in every router's `responses=` declaration
AUTH_ERRORS = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Not allowed for this account", "model": ErrorResponse},
}
NOT_FOUND = {404: {"description": "Resource not found", "model": ErrorResponse}}
BAD_REQUEST = {400: {"description": "Business rule violated", "model": ErrorResponse}}
CONFLICT = {409: {"description": "Duplicate resource", "model": ErrorResponse}}
