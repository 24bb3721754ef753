"""Base model definitions."""

from datetime import UTC, datetime

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Timezone-aware "now" used for column defaults."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass
