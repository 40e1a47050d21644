"""
Error types raised by the portfolio backend.

Every error that should reach a client as a structured response derives from
``ApiError``, which is itself a FastAPI ``HTTPException`` so routes and
services raise it exactly where they would raise ``HTTPException``.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from fastapi import HTTPException


class ErrorSeverity:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ApiError(HTTPException):
    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
        is_operational: bool = True,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.is_operational = is_operational
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def __str__(self) -> str:
        return self.message

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        payload = {
            "message": self.message,
            "code": self.code,
            "statusCode": self.status_code,
            "timestamp": self.timestamp,
        }
        payload.update({key: value for key, value in self.details.items() if value is not None})
        if include_debug and self.__cause__ is not None:
            payload["originalError"] = str(self.__cause__)
        return payload


class ValidationError(ApiError):
    def __init__(self, message: str = "Validation failed", field: Optional[str] = None):
        super().__init__(message, 400, "VALIDATION_ERROR", {"field": field})
        self.field = field


class AuthenticationError(ApiError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, 401, "AUTHENTICATION_ERROR")


class AuthorizationError(ApiError):
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, 403, "AUTHORIZATION_ERROR")


class NotFoundError(ApiError):
    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found", 404, "NOT_FOUND", {"resource": resource})
        self.resource = resource


class ConflictError(ApiError):
    def __init__(self, message: str = "Resource conflict"):
        super().__init__(message, 409, "CONFLICT_ERROR")


class RateLimitError(ApiError):
    def __init__(self, message: str = "Rate limit exceeded", retry_after: Optional[str] = None):
        super().__init__(message, 429, "RATE_LIMIT_ERROR", {"retryAfter": retry_after})


class ExternalServiceError(ApiError):
    def __init__(self, service: str, message: str = "External service unavailable", status_code: int = 502):
        super().__init__(f"{service}: {message}", status_code, "EXTERNAL_SERVICE_ERROR", {"service": service})
        self.service = service


class DatabaseError(ApiError):
    def __init__(self, message: str = "Database operation failed", operation: Optional[str] = None):
        super().__init__(message, 500, "DATABASE_ERROR", {"operation": operation})
        self.operation = operation


class GitHubApiError(ApiError):
    def __init__(self, message: str, endpoint: Optional[str] = None, github_status_code: Optional[int] = None):
        super().__init__(
            message,
            502,
            "GITHUB_API_ERROR",
            {"endpoint": endpoint, "githubStatusCode": github_status_code},
        )
        self.endpoint = endpoint
        self.github_status_code = github_status_code


class WebhookError(ApiError):
    def __init__(self, message: str, source: str = "unknown"):
        super().__init__(message, 400, "WEBHOOK_ERROR", {"source": source})


class AnalyticsError(ApiError):
    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message, 500, "ANALYTICS_ERROR", {"operation": operation})


class ConfigurationError(ApiError):
    def __init__(self, message: str):
        super().__init__(message, 500, "CONFIGURATION_ERROR")


_OPERATIONAL_EXCEPTIONS = (
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
)


def create_error_from_unknown(error: BaseException, default_message: str = "An unexpected error occurred") -> ApiError:
    if isinstance(error, ApiError):
        return error
    if isinstance(error, HTTPException):
        return ApiError(str(error.detail), error.status_code, "HTTP_ERROR")
    message = str(error) or default_message
    wrapped = ApiError(message, 500, "UNKNOWN_ERROR")
    wrapped.__cause__ = error
    return wrapped


def is_operational_error(error: BaseException) -> bool:
    if isinstance(error, ApiError):
        return True
    return isinstance(error, _OPERATIONAL_EXCEPTIONS)


def get_error_severity(error: BaseException) -> str:
    if isinstance(error, ApiError):
        if error.status_code >= 500:
            return ErrorSeverity.HIGH
        if error.status_code >= 400:
            return ErrorSeverity.MEDIUM
    if not is_operational_error(error):
        return ErrorSeverity.CRITICAL
    return ErrorSeverity.LOW
