"""Category routes."""

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from linksaver.database import get_db
from linksaver.models import User
from linksaver.routes import RowIdPath
from linksaver.routes.auth import require_auth
from linksaver.schemas import CategoryCreateRequest, CategoryUpdateRequest, supplied
from linksaver.services import categories as category_service
from linksaver.services.common import UNSET

router: APIRouter = APIRouter(prefix="/categories", tags=["categories"])


@router.get("")
async def list_categories(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    """All categories of the current user with parent, children and counts."""

    categories = await category_service.list_categories(db, current_user.id)
    return {"categories": categories}


@router.get("/{category_id}")
async def get_category(
    category_id: RowIdPath,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    category = await category_service.get_category(db, current_user.id, category_id)
    return {"category": category}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    category = await category_service.create_category(
        db,
        current_user.id,
        body.name,
        color=body.color,
        parent_id=body.parent_id,
    )
    return {
        "category": await category_service.describe_category(
            db, current_user.id, category
        )
    }


@router.put("/{category_id}")
async def update_category(
    category_id: RowIdPath,
    body: CategoryUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    """Rename, recolor and/or move a category.

    ``parentId`` is only touched when present in the body; ``null`` makes
    the category top-level.
    """

    category = await category_service.update_category(
        db,
        current_user.id,
        category_id,
        name=body.name,
        color=body.color,
        parent_id=body.parent_id if supplied(body, "parent_id") else UNSET,
    )
    return {
        "category": await category_service.describe_category(
            db, current_user.id, category
        )
    }


@router.delete("/{category_id}")
async def delete_category(
    category_id: RowIdPath,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    detached = await category_service.delete_category(
        db, current_user.id, category_id
    )
    return {"message": "Category deleted successfully", "detachedLinks": detached}
