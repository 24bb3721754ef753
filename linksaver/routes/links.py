"""Link routes."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from linksaver.database import get_db
from linksaver.errors import ValidationError
from linksaver.models import User
from linksaver.routes import RowIdPath
from linksaver.routes.auth import require_auth
from linksaver.schemas import (
    ID_MAX,
    ID_MIN,
    LinkCreateRequest,
    LinkUpdateRequest,
    supplied,
)
from linksaver.services import links as link_service
from linksaver.services.common import UNSET

router: APIRouter = APIRouter(prefix="/links", tags=["links"])


def _optional_id(value: str | None) -> int | None:
    # ``?categoryId=`` from an empty select means "no filter".
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValidationError(
            "categoryId must be an integer", field="categoryId"
        ) from exc
    if not ID_MIN <= parsed <= ID_MAX:
        raise ValidationError("categoryId is out of range", field="categoryId")
    return parsed


@router.get("")
async def list_links(
    category_id: Annotated[str | None, Query(alias="categoryId")] = None,
    platform: str | None = None,
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    """List the current user's links, optionally filtered."""

    links = await link_service.list_links(
        db,
        current_user.id,
        category_id=_optional_id(category_id),
        platform=platform or None,
        search=search,
    )
    return {"links": [link_service.serialize_link(link) for link in links]}


@router.get("/{link_id}")
async def get_link(
    link_id: RowIdPath,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    link = await link_service.get_link(db, current_user.id, link_id)
    return {"link": link_service.serialize_link(link)}


@router.get("/{link_id}/preview")
async def preview_link(
    link_id: RowIdPath,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    """Video/embed information for a stored link."""

    info = await link_service.preview_link(db, current_user.id, link_id)
    return {"preview": info.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_link(
    body: LinkCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    link = await link_service.create_link(
        db,
        current_user.id,
        url=body.url,
        title=body.title,
        description=body.description,
        platform=body.platform,
        category_id=body.category_id,
    )
    return {"link": link_service.serialize_link(link)}


@router.put("/{link_id}")
async def update_link(
    link_id: RowIdPath,
    body: LinkUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    """Partially update a link.

    Only fields present in the body change; ``"categoryId": null`` removes
    the category and ``"description": null`` clears the description.
    """

    link = await link_service.update_link(
        db,
        current_user.id,
        link_id,
        url=body.url if supplied(body, "url") else UNSET,
        title=body.title if supplied(body, "title") else UNSET,
        description=body.description if supplied(body, "description") else UNSET,
        platform=body.platform if supplied(body, "platform") else UNSET,
        category_id=body.category_id if supplied(body, "category_id") else UNSET,
    )
    return {"link": link_service.serialize_link(link)}


@router.delete("/{link_id}")
async def delete_link(
    link_id: RowIdPath,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_auth),
) -> dict[str, str]:
    await link_service.delete_link(db, current_user.id, link_id)
    return {"message": "Link deleted successfully"}
