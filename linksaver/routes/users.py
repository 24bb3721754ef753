"""User profile routes."""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linksaver.database import get_db
from linksaver.models import Category, Link, User
from linksaver.routes.auth import require_auth, serialize_user
from linksaver.schemas import ProfileUpdateRequest, supplied

logger = logging.getLogger(__name__)

router: APIRouter = APIRouter(prefix="/users", tags=["users"])


async def _profile(db: AsyncSession, user: User) -> dict[str, Any]:
    link_count = await db.scalar(
        select(func.count(Link.id)).where(Link.owner_id == user.id)
    )
    category_count = await db.scalar(
        select(func.count(Category.id)).where(Category.owner_id == user.id)
    )
    profile = serialize_user(user)
    profile["linkCount"] = link_count or 0
    profile["categoryCount"] = category_count or 0
    return profile


@router.get("/profile")
async def profile_view(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    """Return the profile of the current user with link/category counts."""

    return {"user": await _profile(db, current_user)}


@router.put("/profile")
async def profile_update(
    body: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    """Update the editable profile fields; ``null`` clears a field."""

    if supplied(body, "full_name"):
        current_user.full_name = (body.full_name or "").strip() or None
    if supplied(body, "avatar_url"):
        current_user.avatar_url = (body.avatar_url or "").strip() or None

    await db.commit()
    await db.refresh(current_user)
    logger.info("Updated profile of user %s", current_user.id)
    return {"user": await _profile(db, current_user)}
