"""Link store: owner-scoped CRUD, filtering and search."""

from __future__ import annotations

import logging
from typing import Any, Final
from urllib.parse import urlparse

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from linksaver.errors import NotFoundError, ValidationError
from linksaver.models import Link
from linksaver.services.categories import get_owned_category
from linksaver.services.common import UNSET, Unset, isoformat
from linksaver.services.locking import owner_tree_boundary
from linksaver.utils.platforms import VideoInfo, detect_platform, detect_video

logger = logging.getLogger(__name__)

_MAX_TITLE_LENGTH: Final = 500
_MAX_PLATFORM_LENGTH: Final = 50
_LIKE_ESCAPE: Final = "\\"


def is_valid_link_url(url: str) -> bool:
    """Ensure the URL uses http(s) and has a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        # e.g. an unbalanced IPv6 bracket
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def clean_url(url: str | None) -> str:
    cleaned = (url or "").strip()
    if not cleaned or not is_valid_link_url(cleaned):
        raise ValidationError("A valid http(s) URL is required.", field="url")
    return cleaned


def clean_title(title: str | None) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("Title cannot be empty.", field="title")
    if len(cleaned) > _MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title must be at most {_MAX_TITLE_LENGTH} characters.", field="title"
        )
    return cleaned


def clean_platform(platform: str | None) -> str:
    cleaned = (platform or "").strip()
    if not cleaned:
        raise ValidationError("Platform cannot be empty.", field="platform")
    if len(cleaned) > _MAX_PLATFORM_LENGTH:
        raise ValidationError(
            f"Platform must be at most {_MAX_PLATFORM_LENGTH} characters.",
            field="platform",
        )
    return cleaned


def _clean_description(description: str | None) -> str | None:
    if description is None:
        return None
    return description.strip()


def _escape_like(term: str) -> str:
    return (
        term.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", f"{_LIKE_ESCAPE}%")
        .replace("_", f"{_LIKE_ESCAPE}_")
    )


def serialize_link(link: Link) -> dict[str, Any]:
    """Serialize a link with its category summary.

    ``link.category`` must already be loaded (see :func:`_owned_links`).
    """

    category = link.category
    return {
        "id": link.id,
        "title": link.title,
        "url": link.url,
        "description": link.description,
        "platform": link.platform,
        "categoryId": link.category_id,
        "createdAt": isoformat(link.created_at),
        "category": (
            {
                "id": category.id,
                "name": category.name,
                "color": category.color,
                "parentId": category.parent_id,
            }
            if category is not None
            else None
        ),
    }


def _owned_links(owner_id: int) -> Select[tuple[Link]]:
    return (
        select(Link)
        .where(Link.owner_id == owner_id)
        .options(selectinload(Link.category))
        .execution_options(populate_existing=True)
    )


async def list_links(
    db: AsyncSession,
    owner_id: int,
    *,
    category_id: int | None = None,
    platform: str | None = None,
    search: str | None = None,
) -> list[Link]:
    """List the owner's links, newest first.

    ``search`` is a case-insensitive substring match on title, description
    or URL; ``category_id`` and ``platform`` are exact matches. All given
    filters must hold.
    """

    query = _owned_links(owner_id)

    if category_id is not None:
        query = query.where(Link.category_id == category_id)

    if platform:
        query = query.where(Link.platform == platform)

    term = (search or "").strip()
    if term:
        pattern = f"%{_escape_like(term)}%"
        query = query.where(
            or_(
                Link.title.ilike(pattern, escape=_LIKE_ESCAPE),
                Link.description.ilike(pattern, escape=_LIKE_ESCAPE),
                Link.url.ilike(pattern, escape=_LIKE_ESCAPE),
            )
        )

    query = query.order_by(Link.created_at.desc(), Link.id.desc())
    result = await db.execute(query)
    return list(result.scalars())


async def get_link(db: AsyncSession, owner_id: int, link_id: int) -> Link:
    """Return the link if ``owner_id`` owns it, else raise ``NotFoundError``."""

    result = await db.execute(_owned_links(owner_id).where(Link.id == link_id))
    link = result.scalar_one_or_none()
    if link is None:
        raise NotFoundError("Link not found")
    return link


async def create_link(
    db: AsyncSession,
    owner_id: int,
    *,
    url: str,
    title: str,
    description: str | None = None,
    platform: str | None = None,
    category_id: int | None = None,
) -> Link:
    """Save a new link. The platform is detected from the URL when omitted."""

    cleaned_url = clean_url(url)
    cleaned_title = clean_title(title)
    if platform is None or not platform.strip():
        platform = detect_platform(cleaned_url)
    cleaned_platform = clean_platform(platform)

    # Category deletes run in the same boundary.
    async with owner_tree_boundary(db, owner_id):
        if category_id is not None:
            await get_owned_category(db, owner_id, category_id)

        link = Link(
            url=cleaned_url,
            title=cleaned_title,
            description=_clean_description(description),
            platform=cleaned_platform,
            category_id=category_id,
            owner_id=owner_id,
        )
        db.add(link)
        await db.commit()

    logger.info("Saved link %s for user %s", link.id, owner_id)
    return await get_link(db, owner_id, link.id)


async def update_link(
    db: AsyncSession,
    owner_id: int,
    link_id: int,
    *,
    url: str | None | Unset = UNSET,
    title: str | None | Unset = UNSET,
    description: str | None | Unset = UNSET,
    platform: str | None | Unset = UNSET,
    category_id: int | None | Unset = UNSET,
) -> Link:
    """Apply a partial update.

    ``description=None`` clears it and ``category_id=None`` uncategorizes
    the link; ``None`` for the required fields leaves them unchanged.
    """

    changes: dict[str, Any] = {}
    if isinstance(url, str):
        changes["url"] = clean_url(url)
    if isinstance(title, str):
        changes["title"] = clean_title(title)
    if isinstance(platform, str):
        changes["platform"] = clean_platform(platform)
    if not isinstance(description, Unset):
        changes["description"] = _clean_description(description)

    async with owner_tree_boundary(db, owner_id):
        link = await get_link(db, owner_id, link_id)
        if not isinstance(category_id, Unset):
            if category_id is not None:
                await get_owned_category(db, owner_id, category_id)
            changes["category_id"] = category_id

        for field, value in changes.items():
            setattr(link, field, value)
        await db.commit()
    return await get_link(db, owner_id, link_id)


async def delete_link(db: AsyncSession, owner_id: int, link_id: int) -> None:
    link = await get_link(db, owner_id, link_id)
    await db.delete(link)
    await db.commit()
    logger.info("Deleted link %s of user %s", link_id, owner_id)


async def preview_link(db: AsyncSession, owner_id: int, link_id: int) -> VideoInfo:
    """Return video/embed information for a stored link."""

    link = await get_link(db, owner_id, link_id)
    return detect_video(link.url, link.platform)
