"""
Custom exceptions for the application.
"""
from typing import Any, Dict, Iterable, Optional

from app.core.errors import ErrorCode, ErrorMessages, ErrorResponse


class XentroException(Exception):
    """Base exception for all XENTRO exceptions."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[ErrorCode] = None,
    ):
        if code is not None:
            self.code = code
        self.message = message or ErrorMessages.get(self.code)
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Build the JSON error body for this exception."""
        return ErrorResponse(code=self.code, message=self.message, details=self.details)


class ValidationError(XentroException):
    """Validation error exception."""

    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, status_code=400, details=details)


class AuthRequiredError(XentroException):
    """No credentials were presented."""

    code = ErrorCode.AUTH_REQUIRED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401)


class InvalidTokenError(XentroException):
    """Invalid token exception."""

    code = ErrorCode.INVALID_TOKEN

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, status_code=401)


class TokenExpiredError(XentroException):
    """Token expired exception."""

    code = ErrorCode.TOKEN_EXPIRED

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, status_code=401)


class InvalidCredentialsError(XentroException):
    """Invalid credentials exception."""

    code = ErrorCode.INVALID_CREDENTIALS

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, status_code=401)


class InvalidSessionError(XentroException):
    """Token is well-formed but no persisted record backs it."""

    code = ErrorCode.INVALID_SESSION

    def __init__(self, message: str = "No application found for this account"):
        super().__init__(message, status_code=403)


class ForbiddenError(XentroException):
    """Authorization error exception."""

    code = ErrorCode.FORBIDDEN

    def __init__(
        self,
        message: str = "Insufficient permissions",
        required_roles: Optional[Iterable[str]] = None,
        current_role: Optional[str] = None,
    ):
        details: Dict[str, Any] = {}
        if required_roles is not None:
            details["required_roles"] = list(required_roles)
        if current_role is not None:
            details["current_role"] = current_role
        super().__init__(message, status_code=403, details=details)


class AccessDeniedError(XentroException):
    """Resource belongs to another institution."""

    code = ErrorCode.ACCESS_DENIED

    def __init__(self, message: str = "Access denied to this institution"):
        super().__init__(message, status_code=403)


class NotFoundError(XentroException):
    """Resource not found exception."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, message: str = "Requested resource not found"):
        super().__init__(message, status_code=404)


class InvalidStateTransitionError(XentroException):
    """A terminal record was asked to transition again."""

    code = ErrorCode.INVALID_STATE_TRANSITION

    def __init__(self, message: str = "Invalid state transition", current_status: Optional[str] = None):
        details = {"current_status": current_status} if current_status else {}
        super().__init__(message, status_code=409, details=details)


class RateLimitError(XentroException):
    """Rate limit exceeded exception."""

    code = ErrorCode.RATE_LIMITED

    def __init__(
        self,
        message: str = "Too many requests. Please try again later.",
        retry_after: Optional[int] = None,
    ):
        self.retry_after = retry_after
        details = {"retry_after": retry_after} if retry_after else {}
        super().__init__(message, status_code=429, details=details)


class EmailDeliveryError(XentroException):
    """Email delivery error exception."""

    code = ErrorCode.EMAIL_DELIVERY_FAILED

    def __init__(self, message: str = "Failed to deliver email"):
        super().__init__(message, status_code=503)
