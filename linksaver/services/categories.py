"""Category store and hierarchy rules.

Every function takes the acting ``owner_id`` explicitly and never touches
rows of another owner. Structural mutations (anything that sets or depends
on ``parent_id``) load the owner's tree, validate and write inside
:func:`~linksaver.services.locking.owner_tree_boundary`, so two concurrent
requests cannot both pass validation against a stale read.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Final

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from linksaver.config import config
from linksaver.errors import (
    CycleDetectedError,
    HasChildrenError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from linksaver.models import Category, Link
from linksaver.services.common import UNSET, Unset, isoformat
from linksaver.services.locking import owner_tree_boundary
from linksaver.services.tree import MAX_DEPTH, CategoryTree

logger = logging.getLogger(__name__)

_HEX_COLOR_RE: Final = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_MAX_NAME_LENGTH: Final = 255


def clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Category name cannot be empty.", field="name")
    if len(cleaned) > _MAX_NAME_LENGTH:
        raise ValidationError(
            f"Category name must be at most {_MAX_NAME_LENGTH} characters.",
            field="name",
        )
    return cleaned


def clean_color(color: str | None, *, default: str | None = None) -> str:
    """Validate a ``#rgb``/``#rrggbb`` color.

    A missing or blank color becomes ``default``; without one it is an error.
    """

    cleaned = (color or "").strip()
    if not cleaned:
        if default is not None:
            return default
        raise ValidationError("Color cannot be empty.", field="color")
    if not _HEX_COLOR_RE.match(cleaned):
        raise ValidationError(
            "Color must be a hex value like #3b82f6.", field="color"
        )
    return cleaned


def validate_move(
    tree: CategoryTree, category_id: int, new_parent_id: int | None
) -> None:
    """Check that ``category_id`` may be placed under ``new_parent_id``.

    ``None`` means "make it top-level", which is always allowed. The
    has-children rule runs before the generic ancestor walk: with only two
    levels, any cycle would first have to give a parent a parent.
    """

    if new_parent_id is None:
        return

    if new_parent_id == category_id:
        raise InvalidOperationError("Category cannot be its own parent")

    parent = tree.get(new_parent_id)
    if parent is None:
        raise NotFoundError("Parent category not found", field="parentId")

    if tree.has_children(category_id):
        raise InvalidOperationError(
            "Cannot nest a parent with children. "
            "Move or delete its subcategories first."
        )

    if tree.would_create_cycle(category_id, new_parent_id):
        raise CycleDetectedError("Circular reference detected")

    if tree.depth(new_parent_id) >= MAX_DEPTH:
        raise InvalidOperationError(
            "Cannot nest a category under a subcategory. "
            f"Only {MAX_DEPTH} levels are supported."
        )


async def load_category_tree(db: AsyncSession, owner_id: int) -> CategoryTree:
    """Load all categories of one owner into an arena."""

    result = await db.execute(select(Category).where(Category.owner_id == owner_id))
    return CategoryTree.from_rows(result.scalars())


async def get_owned_category(
    db: AsyncSession, owner_id: int, category_id: int
) -> Category:
    """Return the category if ``owner_id`` owns it, else raise ``NotFoundError``."""

    result = await db.execute(
        select(Category).where(
            Category.id == category_id,
            Category.owner_id == owner_id,
        )
    )
    category = result.scalar_one_or_none()
    if category is None:
        raise NotFoundError("Category not found")
    return category


async def _link_counts(db: AsyncSession, owner_id: int) -> dict[int, int]:
    result = await db.execute(
        select(Link.category_id, func.count(Link.id))
        .where(Link.owner_id == owner_id, Link.category_id.is_not(None))
        .group_by(Link.category_id)
    )
    return {category_id: count for category_id, count in result.all()}


def serialize_category(
    category: Category,
    tree: CategoryTree,
    link_counts: dict[int, int] | None = None,
) -> dict[str, Any]:
    """Serialize one category with parent summary, children and counts."""

    parent = tree.get(category.parent_id) if category.parent_id is not None else None
    children = tree.children_of(category.id)
    return {
        "id": category.id,
        "name": category.name,
        "color": category.color,
        "parentId": category.parent_id,
        "createdAt": isoformat(category.created_at),
        "parent": (
            {"id": parent.id, "name": parent.name, "color": parent.color}
            if parent is not None
            else None
        ),
        "children": [
            {
                "id": child.id,
                "name": child.name,
                "color": child.color,
                "parentId": child.parent_id,
            }
            for child in children
        ],
        "childCount": len(children),
        "linkCount": (link_counts or {}).get(category.id, 0),
    }


async def list_categories(db: AsyncSession, owner_id: int) -> list[dict[str, Any]]:
    """Return the owner's categories ordered by name, fully annotated."""

    result = await db.execute(
        select(Category)
        .where(Category.owner_id == owner_id)
        .order_by(func.lower(Category.name), Category.id)
    )
    categories = list(result.scalars())
    tree = CategoryTree.from_rows(categories)
    link_counts = await _link_counts(db, owner_id)
    return [serialize_category(category, tree, link_counts) for category in categories]


async def get_category(
    db: AsyncSession, owner_id: int, category_id: int
) -> dict[str, Any]:
    """Return one annotated category."""

    category = await get_owned_category(db, owner_id, category_id)
    return await describe_category(db, owner_id, category)


async def describe_category(
    db: AsyncSession, owner_id: int, category: Category
) -> dict[str, Any]:
    tree = await load_category_tree(db, owner_id)
    link_counts = await _link_counts(db, owner_id)
    return serialize_category(category, tree, link_counts)


async def create_category(
    db: AsyncSession,
    owner_id: int,
    name: str,
    color: str | None = None,
    parent_id: int | None = None,
) -> Category:
    """Create a category, optionally as a child of a top-level category."""

    cleaned_name = clean_name(name)
    cleaned_color = clean_color(color, default=config.DEFAULT_CATEGORY_COLOR)

    async with owner_tree_boundary(db, owner_id):
        if parent_id is not None:
            tree = await load_category_tree(db, owner_id)
            parent = tree.get(parent_id)
            if parent is None:
                raise NotFoundError("Parent category not found", field="parentId")
            if tree.depth(parent_id) >= MAX_DEPTH:
                raise InvalidOperationError(
                    "Cannot nest a category under a subcategory. "
                    f"Only {MAX_DEPTH} levels are supported."
                )

        category = Category(
            name=cleaned_name,
            color=cleaned_color,
            parent_id=parent_id,
            owner_id=owner_id,
        )
        db.add(category)
        await db.commit()

    await db.refresh(category)
    logger.info(
        "Created category %s for user %s (parent=%s)",
        category.id,
        owner_id,
        parent_id,
    )
    return category


async def update_category(
    db: AsyncSession,
    owner_id: int,
    category_id: int,
    *,
    name: str | None | Unset = UNSET,
    color: str | None | Unset = UNSET,
    parent_id: int | None | Unset = UNSET,
) -> Category:
    """Update name, color and/or parent in one commit.

    Omitted (``UNSET``) fields keep their value. ``name``/``color`` of
    ``None`` are ignored as well; ``parent_id=None`` moves the category to
    the top level.
    """

    changes: dict[str, Any] = {}
    if name is not UNSET and name is not None:
        changes["name"] = clean_name(name)
    if color is not UNSET and color is not None:
        changes["color"] = clean_color(color)

    async with owner_tree_boundary(db, owner_id):
        category = await get_owned_category(db, owner_id, category_id)

        if not isinstance(parent_id, Unset):
            tree = await load_category_tree(db, owner_id)
            validate_move(tree, category_id, parent_id)
            changes["parent_id"] = parent_id

        for field, value in changes.items():
            setattr(category, field, value)
        await db.commit()

    await db.refresh(category)
    if "parent_id" in changes:
        logger.info(
            "Moved category %s of user %s under %s",
            category_id,
            owner_id,
            changes["parent_id"],
        )
    return category


async def move_category(
    db: AsyncSession,
    owner_id: int,
    category_id: int,
    new_parent_id: int | None,
) -> Category:
    """Reparent a category; ``None`` makes it top-level."""

    return await update_category(db, owner_id, category_id, parent_id=new_parent_id)


async def delete_category(db: AsyncSession, owner_id: int, category_id: int) -> int:
    """Delete a childless category and detach its links.

    Returns:
        Number of links whose ``category_id`` was reset to ``NULL``
    """

    async with owner_tree_boundary(db, owner_id):
        category = await get_owned_category(db, owner_id, category_id)

        child_count = await db.scalar(
            select(func.count(Category.id)).where(Category.parent_id == category_id)
        )
        if child_count:
            raise HasChildrenError(
                "Cannot delete category with subcategories. "
                "Please delete or move subcategories first.",
                childCount=child_count,
            )

        result = await db.execute(
            update(Link)
            .where(Link.owner_id == owner_id, Link.category_id == category_id)
            .values(category_id=None)
        )
        detached = result.rowcount or 0

        await db.delete(category)
        await db.commit()

    logger.info(
        "Deleted category %s of user %s (%s links detached)",
        category_id,
        owner_id,
        detached,
    )
    return detached
