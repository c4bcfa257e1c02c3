"""Domain error hierarchy.

Every error raised by the document store, access gate and credential
store derives from ``DocShareError``. Each class carries the HTTP status
and a stable machine-readable code; the app factory installs one
exception handler that renders them as ``{"error": message, "code": code}``.

These errors are plain exceptions with no FastAPI dependency so the core
can be used without the HTTP layer.
"""

from __future__ import annotations


class DocShareError(Exception):
    """Base error for docshare core operations."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class ValidationError(DocShareError):
    """A required field is missing or malformed."""

    status_code = 400
    code = "validation_error"


class AuthError(DocShareError):
    """Bad credentials, or a missing/expired/revoked session."""

    status_code = 401
    code = "unauthorized"


class PermissionDeniedError(DocShareError):
    """Authenticated caller does not own the target document."""

    status_code = 403
    code = "forbidden"


class NotFoundError(DocShareError):
    """Unknown document id or user."""

    status_code = 404
    code = "not_found"


class ConflictError(DocShareError):
    """Uniqueness violation (duplicate username)."""

    status_code = 409
    code = "conflict"


class ConfigurationError(DocShareError):
    """Stored state violates an invariant (e.g. record without password hash)."""

    status_code = 500
    code = "configuration_error"


class StorageError(DocShareError):
    """Underlying record or blob storage read/write failure."""

    status_code = 500
    code = "storage_error"


class NotificationError(DocShareError):
    """Outbound contact notification could not be delivered."""

    status_code = 500
    code = "notification_error"
