"""Database models for LinkSaver."""

from linksaver.models.base import Base, utcnow
from linksaver.models.category import Category
from linksaver.models.link import Link
from linksaver.models.user import User

__all__ = [
    "Base",
    "Category",
    "Link",
    "User",
    "utcnow",
]
