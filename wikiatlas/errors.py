"""
Exception hierarchy for the WikiAtlas client.

Read paths in the gateway degrade to fallbacks instead of raising; write
paths raise one of the types below so callers can show a message to the
user. Validation errors are raised before any network call is made.
"""

from __future__ import annotations

from typing import Any


class AtlasError(Exception):
    """Base exception for all WikiAtlas client errors."""

    def __init__(self, message: str, error_code: str | None = None, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }


class ValidationError(AtlasError):
    """Required input missing or empty; nothing was sent to the backend."""


class GatewayError(AtlasError):
    """Transport or server failure on a gateway call.

    Attributes:
        status_code: HTTP status, or None for transport-level failures
        details: Raw error payload returned by the server, if any
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: Any = None,
        context: dict[str, Any] | None = None,
    ):
        ctx = dict(context or {})
        ctx.setdefault("status_code", status_code)
        super().__init__(message, context=ctx)
        self.status_code = status_code
        self.details = details


class AuthenticationError(GatewayError):
    """The session cookie is missing or was rejected (HTTP 401)."""


class PermissionDeniedError(GatewayError):
    """The user may not touch this resource (HTTP 403). Never retried."""


class NotFoundError(GatewayError):
    """The requested resource does not exist (HTTP 404)."""


class SchemaMismatchError(GatewayError):
    """The backend rejected a write because a column it was sent does not exist."""

    def __init__(self, message: str, column: str, status_code: int | None = None, details: Any = None):
        super().__init__(message, status_code=status_code, details=details, context={"column": column})
        self.column = column


class MissingIdentifierError(GatewayError):
    """A create was accepted but the response carried no article id.

    The article may exist on the server, so creating again could duplicate it.
    """


class AssistError(AtlasError):
    """An AI writing-assistant operation with no sensible fallback failed."""
