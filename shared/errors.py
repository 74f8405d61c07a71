"""
Shared error handling for the cache gateway.

Every failure a request can hit is one of the classes below. Each carries the
HTTP status it maps to, so the service layer renders all of them through a
single exception handler.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    status: int
    upstream_status: Optional[int] = None


class GatewayError(Exception):
    """Base exception for gateway failures."""

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.message, status=self.status_code)


class ValidationError(GatewayError):
    """Requested resource is not fetchable."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(GatewayError):
    """Unknown upstream or route."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class RateLimitError(GatewayError):
    """Rate limiting errors."""

    status_code = 429

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.retry_after = retry_after
        super().__init__("RATE_LIMIT_ERROR", message, details)


class UpstreamApiError(GatewayError):
    """Upstream answered with a non-2xx status."""

    status_code = 502

    def __init__(self, service: str, upstream_status: int, body: str):
        self.service = service
        self.upstream_status = upstream_status
        self.body = body
        super().__init__(
            "UPSTREAM_API_ERROR",
            f"{service} API returned status {upstream_status}: {body}",
            {"upstream_status": upstream_status, "body": body},
        )

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error=self.message,
            status=self.status_code,
            upstream_status=self.upstream_status,
        )


class RequestFailedError(GatewayError):
    """Upstream could not be reached or returned an unreadable body."""

    status_code = 502

    def __init__(
        self,
        service: str,
        message: str = "Request failed",
        details: Optional[Dict[str, Any]] = None,
        timeout: bool = False,
    ):
        self.service = service
        self.timeout = timeout
        super().__init__(
            "REQUEST_FAILED",
            f"Request error: {service}: {message}",
            details,
            status_code=504 if timeout else None,
        )


class CacheUnavailableError(GatewayError):
    """Backing store unreachable or timed out."""

    status_code = 503

    def __init__(self, message: str = "Cache unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_UNAVAILABLE", message, details)


class InternalError(GatewayError):
    """Corrupt cache payload or another server-side fault."""

    status_code = 500

    def __init__(self, message: str = "Internal server error", details: Optional[Dict[str, Any]] = None):
        super().__init__("INTERNAL_ERROR", message, details)
