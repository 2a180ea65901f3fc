"""
Drone Routes Backend — Shared Response Schemas
================================================

Error envelope used by every global exception handler, and the health
check payload.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "CSV parsing failed: Column 3 should be 'Time', got 'Tme'",
            "details": {"field": "csv"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    object_store: str = Field(description="Object store status: available, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
