"""Link metadata extraction route."""

from typing import Any

from fastapi import APIRouter, Depends

from linksaver.models import User
from linksaver.routes.auth import require_auth
from linksaver.schemas import MetadataRequest
from linksaver.services.links import clean_url
from linksaver.utils.metadata import extract_metadata

router: APIRouter = APIRouter(prefix="/metadata", tags=["metadata"])


@router.post("/extract")
async def extract(
    body: MetadataRequest,
    current_user: User = Depends(require_auth),
) -> dict[str, Any]:
    """Suggest title, description and platform for a URL.

    Always answers with usable defaults; ``fallback`` tells the client that
    the values were derived from the URL rather than the page.
    """

    url = clean_url(body.url)
    metadata = await extract_metadata(url, body.content)
    return metadata.to_dict()
