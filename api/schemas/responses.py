"""Standard API response schemas."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Error detail in response."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(None, description="Additional error details")


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    error: ErrorDetail


class StatusResponse(BaseModel):
    """Status response with optional details."""

    status: str
    message: str | None = None
    details: dict[str, Any] | None = None


def error_body(code: str, message: str, details: dict[str, Any] | None = None) -> dict:
    """The ``{"error": {...}}`` body every error response carries."""
    return ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details or None)
    ).model_dump(exclude_none=True)
