"""
Standardized Error Message Catalog for XENTRO.

Centralizes error codes and default messages so every failure reaches the
client as ``{"message": ..., "code": ...}``.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Validation
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Authentication
    AUTH_REQUIRED = "AUTH_REQUIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"

    # Authorization
    INVALID_SESSION = "INVALID_SESSION"
    FORBIDDEN = "FORBIDDEN"
    ACCESS_DENIED = "ACCESS_DENIED"

    # Business logic
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"

    # Security
    RATE_LIMITED = "RATE_LIMITED"

    # System
    EMAIL_DELIVERY_FAILED = "EMAIL_DELIVERY_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorMessages:
    """Centralized error message definitions."""

    _messages: Dict[ErrorCode, str] = {
        ErrorCode.VALIDATION_ERROR: "Invalid input provided",
        ErrorCode.AUTH_REQUIRED: "Authentication required",
        ErrorCode.INVALID_TOKEN: "Invalid token",
        ErrorCode.TOKEN_EXPIRED: "Invalid or expired token",
        ErrorCode.INVALID_CREDENTIALS: "Invalid credentials",
        ErrorCode.INVALID_SESSION: "No application found for this account",
        ErrorCode.FORBIDDEN: "Insufficient permissions",
        ErrorCode.ACCESS_DENIED: "Access denied to this institution",
        ErrorCode.NOT_FOUND: "Requested resource not found",
        ErrorCode.INVALID_STATE_TRANSITION: "Invalid state transition",
        ErrorCode.RATE_LIMITED: "Too many requests. Please try again later.",
        ErrorCode.EMAIL_DELIVERY_FAILED: "Failed to deliver email",
        ErrorCode.INTERNAL_ERROR: "An internal error occurred. Please try again later",
    }

    @classmethod
    def get(cls, code: ErrorCode, **kwargs) -> str:
        """
        Get error message for a given error code.

        Args:
            code: Error code
            **kwargs: Additional context for formatting

        Returns:
            Formatted error message
        """
        base_message = cls._messages.get(code, "An error occurred")

        if kwargs:
            try:
                return base_message.format(**kwargs)
            except KeyError:
                return base_message

        return base_message


class ErrorResponse:
    """Standardized error response structure."""

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message or ErrorMessages.get(code)
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        response: Dict[str, Any] = {
            "message": self.message,
            "code": self.code.value,
        }
        # Details sit beside the message so clients can read e.g. current_role directly
        for key, value in self.details.items():
            response.setdefault(key, value)
        return response

    @classmethod
    def validation_error(cls, message: str, field: Optional[str] = None) -> "ErrorResponse":
        """Create validation error response."""
        details = {"field": field} if field else {}
        return cls(code=ErrorCode.VALIDATION_ERROR, message=message, details=details)

    @classmethod
    def rate_limit_error(cls, retry_after: Optional[int] = None) -> "ErrorResponse":
        """Create rate limit error response."""
        details = {"retry_after": retry_after} if retry_after else {}
        return cls(code=ErrorCode.RATE_LIMITED, details=details)

    @classmethod
    def internal_error(cls, message: Optional[str] = None) -> "ErrorResponse":
        """Create internal error response."""
        return cls(code=ErrorCode.INTERNAL_ERROR, message=message)
