"""Link metadata extraction from HTML pages.

Fetches a page (unless its HTML is supplied) and reads Open Graph, Twitter
card and plain ``<title>``/``<meta name="description">`` tags. Extraction is
best effort: any failure yields a fallback derived from the URL itself so
callers can always pre-fill a form.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote, urlparse

import httpx
from bs4 import BeautifulSoup

from linksaver.config import config
from linksaver.utils.platforms import detect_platform

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger("linksaver.metadata")

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

# Shorter pages are treated as empty responses (error stubs, consent walls).
_MIN_HTML_LENGTH = 100
_MAX_DESCRIPTION_LENGTH = 1000


class MetadataError(Exception):
    """Raised when a page cannot be fetched."""

    def __init__(self, message: str, url: str | None = None) -> None:
        """Initialize the error.

        Args:
            message: Error message
            url: URL that failed
        """
        super().__init__(message)
        self.url = url


@dataclass(frozen=True)
class LinkMetadata:
    title: str
    description: str
    platform: str
    fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def title_from_url(url: str) -> str:
    """Derive a readable title from the last path segment or the host."""

    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    parts =[part for part in parsed.path.split("/") if part]
    if parts:
        segment = unquote(parts[-1])
        stem = PurePosixPath(segment).stem if "." in segment else segment
        title = stem.replace("-", " ").replace("_", " ").strip()
        if title:
            return title
    host = parsed.netloc
    if host.startswith("www."):
        host = host[4:]
    return host or url


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return ""
    content = tag.get("content")
    if not isinstance(content, str):
        return ""
    return content.strip()


def parse_html_metadata(html: str) -> tuple[str, str]:
    """Return ``(title, description)`` from an HTML document.

    Preference order is Open Graph, then Twitter card, then the plain tags.
    """

    soup = BeautifulSoup(html, "html.parser")

    title = _meta_content(soup, property="og:title") or _meta_content(
        soup, name="twitter:title"
    )
    if not title and soup.title is not None and soup.title.string:
        title = soup.title.string.strip()

    description = (
        _meta_content(soup, property="og:description")
        or _meta_content(soup, name="twitter:description")
        or _meta_content(soup, name="description")
    )
    return " ".join(title.split()), description[:_MAX_DESCRIPTION_LENGTH]


async def fetch_page(
    url: str,
    *,
    timeout: float | None = None,
    headers: Mapping[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Fetch a page as text.

    Raises:
        MetadataError: on HTTP errors, network errors or an empty body
    """

    request_headers = dict(DEFAULT_HEADERS)
    if headers:
        request_headers.update(headers)

    logger.info("Fetching metadata from %s", url)
    try:
        async with httpx.AsyncClient(
            timeout=timeout if timeout is not None else config.METADATA_FETCH_TIMEOUT,
            follow_redirects=True,
            headers=request_headers,
            transport=transport,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise MetadataError(
            f"HTTP {exc.response.status_code} for {url}", url=url
        ) from exc
    except httpx.RequestError as exc:
        raise MetadataError(f"Failed to fetch {url}: {exc}", url=url) from exc

    text = response.text
    if len(text) < _MIN_HTML_LENGTH:
        raise MetadataError(f"Empty response from {url}", url=url)
    return text


async def extract_metadata(
    url: str,
    content: str | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> LinkMetadata:
    """Extract title, description and platform for ``url``.

    Args:
        url: Page URL
        content: Pre-fetched HTML; skips the network request when given
        transport: Optional httpx transport (tests)

    Returns:
        Extracted metadata; ``fallback`` is true when nothing usable was found
    """

    platform = detect_platform(url)

    try:
        html = content if content else await fetch_page(url, transport=transport)
        title, description = parse_html_metadata(html)
    except MetadataError as exc:
        logger.warning("Metadata extraction failed, using fallback: %s", exc)
        title, description = "", ""

    if not title:
        return LinkMetadata(
            title=title_from_url(url),
            description=description,
            platform=platform,
            fallback=True,
        )
    return LinkMetadata(title=title, description=description, platform=platform)
