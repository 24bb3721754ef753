"""Category model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from linksaver.models.base import Base, utcnow

if TYPE_CHECKING:
    from linksaver.models.link import Link
    from linksaver.models.user import User


class Category(Base):
    """User-defined link category.

    ``parent_id`` is a flat, nullable pointer into the same table. Tree
    rules (two levels, same owner, no deleting parents) are enforced by
    :mod:`linksaver.services.categories`, not by relationship objects.
    """

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    color: Mapped[str] = mapped_column(String(7), default="#3b82f6")
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    owner: Mapped[User] = relationship("User", back_populates="categories")
    links: Mapped[list[Link]] = relationship(
        "Link", back_populates="category", passive_deletes=True
    )
