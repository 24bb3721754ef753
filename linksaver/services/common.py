"""Small helpers shared by the services."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Final


class Unset:
    """Marker for "field not supplied" where ``None`` is a meaningful value."""

    _instance: Unset | None = None

    def __new__(cls) -> Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = Unset()


def isoformat(value: datetime) -> str:
    """Serialize a stored timestamp as UTC ISO-8601.

    SQLite hands datetimes back without tzinfo; they were written as UTC.
    """

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()
