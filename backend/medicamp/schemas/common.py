"""
MediCamp Backend - Shared Response Schemas
============================================

Error envelope, acknowledgement and health payloads used across routers.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body for every non-2xx response.

    Example:
        {
            "error": "duplicate_registration",
            "message": "You have already registered for this camp",
            "details": {"camp_id": "..."},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class AckResponse(BaseModel):
    """Result of an idempotent delete; deleted_count is 0 when nothing existed."""
    acknowledged: bool = True
    deleted_count: int = Field(ge=0)


class SuccessResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    payments: str = Field(description="Payment provider: available, unconfigured, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
