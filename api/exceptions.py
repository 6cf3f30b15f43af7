"""Custom exceptions and error handling."""

from typing import Any

from fastapi import status


class AuditServiceError(Exception):
    """Base exception for the audit service."""

    def __init__(
        self,
        message: str,
        code: str = "error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AuditServiceError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str | None = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(
            message=message,
            code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )


class ValidationError(AuditServiceError):
    """Request payload failed validation."""

    def __init__(self, message: str, fields: list[str] | None = None):
        details = {"fields": fields} if fields else {}
        super().__init__(
            message=message,
            code="validation_error",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class AuthenticationError(AuditServiceError):
    """Authentication failed."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message=message,
            code="authentication_error",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class ExternalServiceError(AuditServiceError):
    """External service error."""

    def __init__(self, service: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"{service}: {message}",
            code="external_service_error",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"service": service, **(details or {})},
        )
        self.service = service


class CollectionError(ExternalServiceError):
    """Headless browser could not load or read the site."""

    def __init__(self, message: str):
        super().__init__("browser", message)


class PerformanceError(ExternalServiceError):
    """PageSpeed Insights call failed or returned an unexpected shape."""

    def __init__(self, message: str):
        super().__init__("pagespeed", message)


class LLMError(ExternalServiceError):
    """Chat completion request failed."""

    def __init__(self, message: str):
        super().__init__("llm", message)


class StructuredOutputError(ExternalServiceError):
    """Model reply could not be parsed into the requested structure."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__("llm", f"Failed to parse structured output: {message}")
        self.raw = raw


class RenderError(ExternalServiceError):
    """Document could not be printed to PDF."""

    def __init__(self, message: str):
        super().__init__("renderer", message)


class NotificationError(ExternalServiceError):
    """Email delivery failed."""

    def __init__(self, message: str):
        super().__init__("email", message)

