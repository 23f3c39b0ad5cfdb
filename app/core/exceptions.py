"""
Base exception classes for application-wide error handling.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input or business-rule violations (HTTP 400)
    ├── NotFoundError - Resource not found (HTTP 404)
    ├── PermissionDeniedError - Authorization failures (HTTP 403)
    ├── ConflictError - State conflicts, duplicates, bad transitions (HTTP 409)
    └── ExternalServiceError - Third-party service failures (HTTP 502)

Domain apps subclass these categories and set ``default_error_code``; the API
layer maps the category to a status code and renders ``to_dict()``.

Usage:
    from core.exceptions import ConflictError

    raise ConflictError(
        "Engagement already has an active settlement",
        error_code="DUPLICATE_ACTIVE_RECORD",
        details={"engagement_id": str(engagement_id)},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, amounts, field errors)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Payee has not completed onboarding",
                "error_code": "PAYEE_NOT_ONBOARDED",
                "details": {"payee_id": 42}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input or a business rule is violated.

    Use for service-layer checks (amounts, onboarding state). Request-shape
    validation stays in DRF serializers.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """Raised when a single-resource lookup finds nothing."""

    default_error_code: str = "NOT_FOUND"


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when an authenticated caller may not perform an operation.

    Authentication failures (missing or invalid token) stay with DRF's
    AuthenticationFailed.
    """

    default_error_code: str = "PERMISSION_DENIED"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Unique constraint violations
    - Invalid state transitions
    - Operations that already happened (e.g. a payout already transferred)
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Log the original error for debugging; only the message and code reach
    API clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
