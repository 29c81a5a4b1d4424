"""
Shared error handling for firebase-edge-auth.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

try:
    from opentelemetry import trace
    HAS_OPENTELEMETRY = True
except ImportError:
    HAS_OPENTELEMETRY = False


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class FirebaseAuthError(Exception):
    """Base exception for firebase-edge-auth."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        if HAS_OPENTELEMETRY:
            current_span = trace.get_current_span()
            if current_span and current_span.is_recording():
                span_context = current_span.get_span_context()
                if span_context.trace_id != 0:
                    trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(FirebaseAuthError):
    """Invalid arguments supplied by the caller."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class AuthenticationError(FirebaseAuthError):
    """A token or session cookie failed verification."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
        code: str = "AUTHENTICATION_ERROR",
    ):
        super().__init__(code, message, details)


class TokenExpiredError(AuthenticationError):
    """The token's exp claim is in the past."""

    def __init__(self, message: str = "Token has expired", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="TOKEN_EXPIRED")


class TokenRevokedError(AuthenticationError):
    """The token was issued before the user's tokens were revoked."""

    def __init__(self, message: str = "Token has been revoked", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="TOKEN_REVOKED")


class UserDisabledError(AuthenticationError):
    """The user referenced by the token is disabled."""

    def __init__(self, message: str = "User account is disabled", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="USER_DISABLED")


class ExternalServiceError(FirebaseAuthError):
    """External service errors."""

    def __init__(
        self,
        service: str,
        message: str = "External service error",
        details: Optional[Dict[str, Any]] = None,
        code: str = "EXTERNAL_SERVICE_ERROR",
    ):
        self.service = service
        super().__init__(code, f"{service}: {message}", details)


class IdentityToolkitError(ExternalServiceError):
    """Error body returned by the Identity Toolkit REST API.

    ``reason`` is the provider's reason code, e.g. ``EMAIL_EXISTS`` or
    ``INVALID_PASSWORD``; it is also used as the error ``code``.
    """

    def __init__(self, status_code: int, reason: str, message: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.reason = reason
        details = dict(details or {})
        details.setdefault("status_code", status_code)
        super().__init__("identity-toolkit", message or reason, details, code=reason)
