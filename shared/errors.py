"""
Shared error handling for the Access Layer.
"""

from typing import Dict, Any, Optional, List
from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """Error payload carried inside an error response."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class ErrorResponse(BaseModel):
    """Standard error response format: ``{statusCode, error}``."""

    model_config = ConfigDict(populate_by_name=True)

    status_code: int = Field(alias="statusCode")
    error: ErrorDetail


class AccessLayerException(Exception):
    """Base exception for Access Layer services."""

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
        return ErrorResponse(
            status_code=self.status_code,
            error=ErrorDetail(code=self.code, message=self.message, details=self.details),
        )


class ValidationError(AccessLayerException):
    """Validation-related errors.

    ``violations`` holds every failed check, not just the first one.
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Input validation error",
        violations: Optional[List[Dict[str, str]]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.violations = list(violations or [])
        merged = dict(details or {})
        merged.setdefault("errors", self.violations)
        super().__init__("VALIDATION_ERROR", message, merged)


class NotFoundError(AccessLayerException):
    """Requested entity does not exist."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class CacheMissError(AccessLayerException):
    """Key absent from the cache. Expected on the read-through path."""

    status_code = 404

    def __init__(self, key: str):
        self.key = key
        super().__init__("CACHE_MISS", f"Key {key} not in the cache", {"key": key})


class CacheTransportError(AccessLayerException):
    """Cache store unreachable or returned unusable data."""

    status_code = 503

    def __init__(self, message: str = "Cache unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_UNAVAILABLE", message, details)


class UpstreamError(AccessLayerException):
    """Any transport or application-level failure from the upstream service."""

    status_code = 500

    def __init__(
        self,
        service: str,
        message: str = "External service error",
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.service = service
        self.cause = cause
        merged = dict(details or {})
        if cause is not None:
            merged.setdefault("cause", f"{type(cause).__name__}: {cause}")
        super().__init__("UPSTREAM_ERROR", f"{service}: {message}", merged)

