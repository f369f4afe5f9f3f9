"""Custom exceptions for StepGraph.

Provides a hierarchy of exceptions with stable error codes and
structured error payloads for presentation layers.
"""

from typing import Any


class StepGraphError(Exception):
    """Base exception for all StepGraph errors."""

    error_code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize exception with optional details.

        Args:
            message: Human-readable error message.
            details: Additional error details for debugging.
            cause: Original exception that caused this error.
        """
        self.message = message or self.message
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for presentation layers."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# Validation errors
class ValidationError(StepGraphError):
    """Search request validation failed."""

    error_code = "VALIDATION_ERROR"
    message = "Search request validation failed"


class InvalidSearchError(ValidationError):
    """Search parameters do not fit the requested mode."""

    error_code = "INVALID_SEARCH"
    message = "Invalid search parameters"


class NoRootsSelectedError(ValidationError):
    """Loop detection invoked without any root step."""

    error_code = "NO_ROOTS_SELECTED"
    message = "Select at least one root step"


# Not found errors
class NotFoundError(StepGraphError):
    """Resource not found."""

    error_code = "NOT_FOUND"
    message = "Resource not found"


class StepNotFoundError(NotFoundError):
    """Step not found in the graph snapshot."""

    error_code = "STEP_NOT_FOUND"
    message = "Step not found"


class StartStepNotFoundError(StepNotFoundError):
    """Start step of a path search not found."""

    error_code = "START_STEP_NOT_FOUND"
    message = "Start step not found"


# Cancellation is a clean stop, not a failure
class SearchCancelledError(StepGraphError):
    """Search stopped on request."""

    error_code = "SEARCH_CANCELLED"
    message = "Search cancelled"


# Internal errors
class InternalError(StepGraphError):
    """Internal error."""

    error_code = "INTERNAL_ERROR"
    message = "An internal error occurred"


class SearchFailedError(InternalError):
    """Traversal failed unexpectedly."""

    error_code = "SEARCH_FAILED"
    message = "Search failed unexpectedly"
