"""
Error hierarchy for the Abby SDK.

Every error raised by the SDK derives from AbbyError, so callers can catch
the whole family with a single except clause.
"""

from typing import Any


class AbbyError(Exception):
    """Base error class for SDK errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class ConfigurationError(AbbyError):
    """Invalid client configuration, e.g. a missing API key."""


class TransportError(AbbyError):
    """The request never produced an HTTP response (DNS, connection reset, ...)."""


class AbortError(AbbyError):
    """
    The request was aborted before a response arrived.

    Raised both when the configured timeout elapses and when a caller-supplied
    signal fires; both cases raise this same type.
    """

    def __init__(self, message: str = "The operation was aborted.", reason: Any = None):
        super().__init__(message)
        self.reason = reason


class APIError(AbbyError):
    """API error with status code and message."""

    def __init__(
        self,
        message: str,
        status: int = 0,
        details: dict | None = None,
        request_id: str | None = None,
    ):
        super().__init__(message, details)
        self.status = status
        self.request_id = request_id

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.status:
            result["status"] = self.status
        if self.request_id:
            result["request_id"] = self.request_id
        return result


class ValidationError(AbbyError):
    """A payload did not match the shape declared by the API schema."""
