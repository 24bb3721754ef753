"""Error taxonomy shared by services and the HTTP layer.

Every failure a caller can act on is a :class:`LinkSaverError` subclass with
a stable machine-readable ``kind`` and the HTTP status it maps to. Services
raise them; ``linksaver.main`` renders them as ``{"error", "message"}``.
"""

from __future__ import annotations

from typing import Any, ClassVar


class LinkSaverError(Exception):
    """Base class for expected, user-facing failures."""

    kind: ClassVar[str] = "error"
    status_code: ClassVar[int] = 400

    def __init__(self, message: str, **details: Any) -> None:
        """Initialize the error.

        Args:
            message: Human-readable message
            details: Extra machine-readable context included in the response
        """
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.kind, "message": self.message}
        payload.update(self.details)
        return payload


class UnauthorizedError(LinkSaverError):
    """Missing, invalid or expired credential."""

    kind = "unauthorized"
    status_code = 401


class ForbiddenError(LinkSaverError):
    """The action is disabled for everyone (e.g. sign-up turned off)."""

    kind = "forbidden"
    status_code = 403


class NotFoundError(LinkSaverError):
    """Entity absent or not owned by the caller."""

    kind = "not_found"
    status_code = 404


class ConflictError(LinkSaverError):
    """Duplicate value for a unique field."""

    kind = "conflict"
    status_code = 409


class InvalidOperationError(LinkSaverError):
    """Structurally forbidden mutation (self-parent, nesting too deep)."""

    kind = "invalid_operation"
    status_code = 400


class CycleDetectedError(InvalidOperationError):
    """Reparenting would make a category its own ancestor."""

    kind = "cycle_detected"


class HasChildrenError(LinkSaverError):
    """Delete blocked because the category still has subcategories."""

    kind = "has_children"
    status_code = 400


class ValidationError(LinkSaverError):
    """Malformed input: bad URL, empty required field, bad color."""

    kind = "validation_error"
    status_code = 400

    def __init__(self, message: str, field: str | None = None, **details: Any) -> None:
        if field is not None:
            details["field"] = field
        super().__init__(message, **details)
        self.field = field


__all__ = [
    "ConflictError",
    "CycleDetectedError",
    "ForbiddenError",
    "HasChildrenError",
    "InvalidOperationError",
    "LinkSaverError",
    "NotFoundError",
    "UnauthorizedError",
    "ValidationError",
]
