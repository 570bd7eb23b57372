"""Custom exceptions for sakerec.

This module provides the exception hierarchy used by the recommendation
engine with:
- Structured error information
- HTTP status code mapping for whichever API layer wraps the engine
- User-friendly error messages
- Machine-readable error codes
- Contextual details for debugging
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    # General errors (1xxx)
    INTERNAL_ERROR = "SR1000"
    UNKNOWN_ERROR = "SR1001"
    CONFIGURATION_ERROR = "SR1002"

    # Validation errors (4xxx)
    VALIDATION_ERROR = "SR4000"
    INVALID_INPUT = "SR4001"
    INVALID_MOOD = "SR4002"
    INVALID_RECOMMENDATION_TYPE = "SR4003"

    # Resource errors (5xxx)
    EMPTY_MENU = "SR5000"

    # Cache errors (6xxx)
    CACHE_ERROR = "SR6000"


class SakeRecException(Exception):
    """Base exception for all sakerec errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code.
        http_status: HTTP status code for API responses.
        details: Additional context for debugging.
        user_message: User-friendly message (may differ from message).
    """

    message: str = "An unexpected error occurred"
    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    http_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    user_message: str | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: ErrorCode | None = None,
        http_status: HTTPStatus | None = None,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            http_status: HTTP status code for API responses.
            details: Additional context for debugging.
            user_message: User-friendly message for end users.
        """
        self.message = message or self.__class__.message
        self.error_code = error_code or self.__class__.error_code
        self.http_status = http_status or self.__class__.http_status
        self.details = details or {}
        self.user_message = user_message or self.__class__.user_message or self.message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses.

        Returns:
            Dictionary with error information.
        """
        return {
            "error": {
                "code": self.error_code.value,
                "message": self.user_message,
                "details": self.details if self.details else None,
            }
        }

    def __str__(self) -> str:
        """String representation including error code."""
        return f"[{self.error_code.value}] {self.message}"

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code.value}, "
            f"http_status={self.http_status.value}, "
            f"details={self.details!r}"
            f")"
        )


class ConfigurationError(SakeRecException):
    """Invalid engine configuration."""

    message = "Invalid configuration"
    error_code = ErrorCode.CONFIGURATION_ERROR


# ============================================================================
# Validation Exceptions
# ============================================================================


class ValidationError(SakeRecException):
    """Validation-related errors."""

    message = "Validation error"
    error_code = ErrorCode.VALIDATION_ERROR
    http_status = HTTPStatus.BAD_REQUEST

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Error message.
            field: Name of the field that failed validation.
            value: The invalid value.
            constraint: Description of the constraint that was violated.
            **kwargs: Additional arguments passed to parent.
        """
        details = kwargs.pop("details", {}) or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if constraint:
            details["constraint"] = constraint

        super().__init__(message, details=details, **kwargs)


class InvalidInputError(ValidationError):
    """Invalid input data."""

    message = "Invalid input data"
    error_code = ErrorCode.INVALID_INPUT


class InvalidMoodError(ValidationError):
    """Mood is not one of the supported mixing strategies."""

    message = "Invalid recommendation mood"
    error_code = ErrorCode.INVALID_MOOD


class InvalidRecommendationTypeError(ValidationError):
    """Menu recommendation type is not supported."""

    message = "Invalid recommendation type"
    error_code = ErrorCode.INVALID_RECOMMENDATION_TYPE


class EmptyMenuError(ValidationError):
    """A venue menu with nothing on it was handed to the menu composer."""

    message = "No items to pick from"
    error_code = ErrorCode.EMPTY_MENU
    user_message = "The menu has no sake on it"


# ============================================================================
# Cache Exceptions
# ============================================================================


class CacheError(SakeRecException):
    """Recommendation cache store failure."""

    message = "Recommendation cache unavailable"
    error_code = ErrorCode.CACHE_ERROR
    http_status = HTTPStatus.SERVICE_UNAVAILABLE

    def __init__(
        self,
        message: str | None = None,
        *,
        user_id: str | None = None,
        operation: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize cache error.

        Args:
            message: Error message.
            user_id: Owner of the cache entries being touched.
            operation: Cache operation that failed.
            **kwargs: Additional arguments passed to parent.
        """
        details = kwargs.pop("details", {}) or {}
        if user_id:
            details["user_id"] = user_id
        if operation:
            details["operation"] = operation

        super().__init__(message, details=details, **kwargs)


def get_http_status_for_exception(exc: Exception) -> HTTPStatus:
    """Get the appropriate HTTP status code for an exception.

    Args:
        exc: The exception to map.

    Returns:
        The appropriate HTTP status code.
    """
    if isinstance(exc, SakeRecException):
        return exc.http_status

    exception_status_map: dict[type, HTTPStatus] = {
        ValueError: HTTPStatus.BAD_REQUEST,
        TypeError: HTTPStatus.BAD_REQUEST,
        KeyError: HTTPStatus.NOT_FOUND,
        TimeoutError: HTTPStatus.GATEWAY_TIMEOUT,
    }

    for exc_type, status in exception_status_map.items():
        if isinstance(exc, exc_type):
            return status

    return HTTPStatus.INTERNAL_SERVER_ERROR
