"""
Consistent error handling for the billing core.

All errors surfaced to host applications use these classes and the
to_dict() envelope. status_code tells the host which HTTP status to send.

Standard HTTP status codes:
- 400: Bad Request (validation errors)
- 401: Unauthorized (no authenticated identity)
- 402: Payment Required (inactive subscription, quota reached)
- 500: Internal Server Error
"""

from typing import Any, Optional

from fastapi import status


class AppError(Exception):
    """
    Base application error with consistent error shape.

    All custom errors should inherit from this class.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to API error response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(AppError):
    """Validation error (400)."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class AuthenticationError(AppError):
    """No authenticated identity for a mutation (401)."""

    def __init__(self, message: str = "Unauthorized", details: Optional[dict[str, Any]] = None):
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
        )


class PaymentRequiredError(AppError):
    """Action requires an active paid subscription (402)."""

    def __init__(
        self,
        message: str = "This action requires an active subscription",
        details: Optional[dict[str, Any]] = None,
        code: str = "PAYMENT_REQUIRED",
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            details=details,
        )
