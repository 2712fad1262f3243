"""
Error types raised by the Forge client.

Every error carries a message and optional details, and can be rendered as a
dict for JSON output by the CLI.
"""

from typing import Any


class ForgeError(Exception):
    """Base error class for Forge client errors."""

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


class HttpError(ForgeError):
    """Non-2xx response from the Forge API."""

    def __init__(
        self,
        message: str,
        status: int = 0,
        url: str | None = None,
        body: str | None = None,
        response_message: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.status = status
        self.url = url
        self.body = body
        self.response_message = response_message

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.status:
            result["status"] = self.status
        if self.url:
            result["url"] = self.url
        return result


class NotFoundError(HttpError):
    """The requested resource does not exist (HTTP 404)."""


class ForgeConnectionError(ForgeError):
    """The request never produced an HTTP response."""


class JsonMappingError(ForgeError):
    """A response body could not be decoded into the requested type."""

    def __init__(self, message: str, body: str | None = None, details: dict | None = None):
        super().__init__(message, details)
        self.body = body


class OfflineError(ForgeError):
    """A network operation was attempted on an offline session."""


class WaitInterrupted(ForgeError):
    """A rate-limit wait was interrupted before the retry could happen."""


class ValidationError(ForgeError):
    """Validation error for local input/data issues (not API errors)."""
