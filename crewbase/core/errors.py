"""
Error taxonomy.

Every failure the API reports is one of these. Route handlers and services
raise them; the handlers in crewbase.api.errors turn them into the JSON
envelope {"success": false, "error": <message>}.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class CrewbaseError(Exception):
    """Base exception for all crewbase errors."""

    status_code: int = 500
    default_message: str = "Internal Server Error."

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Response body for this error."""
        return {"success": False, "error": self.message}


class ValidationError(CrewbaseError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid request."


class Unauthenticated(CrewbaseError):
    """Missing, invalid or expired bearer token."""

    status_code = 401
    default_message = "Invalid or expired token"


class Forbidden(CrewbaseError):
    """Authenticated, but the role is not permitted."""

    status_code = 403
    default_message = "Access denied"


class NotFound(CrewbaseError):
    """Referenced entity does not exist."""

    status_code = 404
    default_message = "Not found."


class AuthFailed(CrewbaseError):
    """
    Credential mismatch inside an authenticated flow.

    Reported as 400, not 401: the session itself is valid, only the
    re-entered password is wrong.
    """

    status_code = 400
    default_message = "Current password is incorrect."


class InvalidOrExpiredToken(CrewbaseError):
    """Password-reset token is unknown, consumed or past its expiry."""

    status_code = 400
    default_message = "Invalid or expired reset token"


class InternalError(CrewbaseError):
    """Unexpected failure, or a downstream collaborator failed."""

    status_code = 500


# =============================================================================
# Store errors
# =============================================================================


class StoreErrorKind(str, Enum):
    """What went wrong inside a store, independent of the backing engine."""

    UNAVAILABLE = "unavailable"  # network, throttling, endpoint down
    CONFLICT = "conflict"        # uniqueness or condition violated
    CORRUPT = "corrupt"          # stored document does not match the model
    UNKNOWN = "unknown"


class StoreError(Exception):
    """Raised by store implementations; carries an explicit kind."""

    def __init__(self, kind: StoreErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message
