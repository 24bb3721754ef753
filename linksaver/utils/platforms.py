"""Best-effort platform and video detection for saved links.

Nothing here is authoritative: the rules are heuristics over known domains
and URL shapes. The only promise is that malformed input never raises.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final
from urllib.parse import ParseResult, parse_qs, quote, urlparse

# Ordered: first matching domain wins.
PLATFORM_DOMAINS: Final[tuple[tuple[str, tuple[str, ...]], ...]] = (
    ("Facebook", ("facebook.com", "fb.com", "fb.watch")),
    ("Instagram", ("instagram.com",)),
    ("Twitter", ("twitter.com", "x.com")),
    ("LinkedIn", ("linkedin.com",)),
    ("YouTube", ("youtube.com", "youtu.be")),
    ("TikTok", ("tiktok.com",)),
    ("Pinterest", ("pinterest.com",)),
    ("Reddit", ("reddit.com",)),
)
OTHER_PLATFORM: Final = "Other"

_VIDEO_PLATFORM_NAMES: Final[dict[str, str]] = {
    "youtube": "YouTube",
    "instagram": "Instagram Reel",
    "tiktok": "TikTok",
    "facebook": "Facebook Video",
    "vimeo": "Vimeo",
    "unknown": "Video",
}

_YOUTUBE_ID_RE: Final = re.compile(r"^[A-Za-z0-9_-]{8,}$")
_YOUTUBE_PATH_MARKERS: Final = ("/watch/", "/embed/", "/v/", "/shorts/")


@dataclass(frozen=True)
class VideoInfo:
    """Result of :func:`detect_video`."""

    is_video: bool
    platform: str = "unknown"
    embed_url: str | None = None
    video_id: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "isVideo": self.is_video,
            "platform": self.platform,
            "embedUrl": self.embed_url,
            "videoId": self.video_id,
            "platformName": platform_display_name(self.platform),
        }


NOT_A_VIDEO: Final = VideoInfo(is_video=False)


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith(f".{domain}")


def _parse(url: str) -> ParseResult | None:
    try:
        parsed = urlparse(url.strip())
    except (ValueError, AttributeError):
        return None
    if not parsed.netloc:
        return None
    return parsed


def _hostname(parsed: ParseResult) -> str:
    try:
        host = parsed.hostname or ""
    except ValueError:
        return ""
    return host.lower()


def detect_platform(url: str) -> str:
    """Map a URL to a known social platform name, or ``"Other"``."""

    parsed = _parse(url)
    if parsed is None:
        return OTHER_PLATFORM
    host = _hostname(parsed)
    if host.startswith("www."):
        host = host[4:]
    for platform, domains in PLATFORM_DOMAINS:
        if any(_host_matches(host, domain) for domain in domains):
            return platform
    return OTHER_PLATFORM


def platform_display_name(platform: str) -> str:
    return _VIDEO_PLATFORM_NAMES.get(platform, "Video")


def _first_segment(value: str) -> str:
    for separator in ("/", "?", "&", "#"):
        value = value.split(separator, 1)[0]
    return value.strip()


def _youtube(parsed: ParseResult, url: str) -> VideoInfo | None:
    host = _hostname(parsed)
    path = parsed.path
    candidate: str | None = None

    if _host_matches(host, "youtu.be"):
        candidate = _first_segment(path.lstrip("/"))
    else:
        query_ids = parse_qs(parsed.query).get("v")
        if query_ids:
            candidate = query_ids[0]
        else:
            for marker in _YOUTUBE_PATH_MARKERS:
                if marker in path:
                    candidate = _first_segment(path.split(marker, 1)[1])
                    break

    if candidate:
        candidate = _first_segment(candidate)
    if not candidate or not _YOUTUBE_ID_RE.match(candidate):
        return None
    return VideoInfo(
        is_video=True,
        platform="youtube",
        embed_url=f"https://www.youtube.com/embed/{candidate}",
        video_id=candidate,
    )


_INSTAGRAM_RE: Final = re.compile(r"/(reel|tv)/([A-Za-z0-9_-]+)", re.IGNORECASE)


def _instagram(parsed: ParseResult, url: str) -> VideoInfo | None:
    # Plain /p/ posts are often photos; only reels and tv count.
    match = _INSTAGRAM_RE.search(parsed.path)
    if not match:
        return None
    reel_id = match.group(2)
    return VideoInfo(
        is_video=True,
        platform="instagram",
        embed_url=(
            f"https://www.instagram.com/p/{reel_id}/embed/"
            f"?cr=1&v=14&wp=1080&rd={quote(url, safe='')}"
        ),
        video_id=reel_id,
    )


_TIKTOK_RE: Final = re.compile(r"/video/(\d+)")


def _tiktok(parsed: ParseResult, url: str) -> VideoInfo | None:
    match = _TIKTOK_RE.search(parsed.path)
    if not match:
        return None
    video_id = match.group(1)
    return VideoInfo(
        is_video=True,
        platform="tiktok",
        embed_url=f"https://www.tiktok.com/embed/v2/{video_id}",
        video_id=video_id,
    )


_FACEBOOK_VIDEOS_RE: Final = re.compile(r"/videos/(\d+)")
_FACEBOOK_REEL_RE: Final = re.compile(r"/reel/([A-Za-z0-9_-]+)")


def _facebook_embed(url: str) -> str:
    return (
        "https://www.facebook.com/plugins/video.php"
        f"?href={quote(url, safe='')}&show_text=false&width=500"
    )


def _facebook(parsed: ParseResult, url: str) -> VideoInfo | None:
    host = _hostname(parsed)
    path = parsed.path
    video_id: str | None = None

    for pattern in (_FACEBOOK_VIDEOS_RE, _FACEBOOK_REEL_RE):
        match = pattern.search(path)
        if match:
            video_id = match.group(1)
            break
    if video_id is None:
        query_ids = parse_qs(parsed.query).get("v")
        if query_ids:
            video_id = query_ids[0]
    is_fb_watch = _host_matches(host, "fb.watch")
    if video_id is None and is_fb_watch:
        video_id = _first_segment(path.lstrip("/")) or None

    looks_like_video = (
        video_id is not None
        or is_fb_watch
        or any(marker in path for marker in ("/watch", "/reel", "/videos/", "/video/"))
    )
    if not looks_like_video:
        return None
    return VideoInfo(
        is_video=True,
        platform="facebook",
        embed_url=_facebook_embed(url),
        video_id=video_id,
    )


_VIMEO_RE: Final = re.compile(r"/(\d+)")


def _vimeo(parsed: ParseResult, url: str) -> VideoInfo | None:
    match = _VIMEO_RE.search(parsed.path)
    if not match:
        return None
    video_id = match.group(1)
    return VideoInfo(
        is_video=True,
        platform="vimeo",
        embed_url=f"https://player.vimeo.com/video/{video_id}",
        video_id=video_id,
    )


Extractor = Callable[[ParseResult, str], VideoInfo | None]
HintBuilder = Callable[[str, re.Match[str]], VideoInfo]


def _on_hosts(*domains: str) -> Callable[[ParseResult], bool]:
    def predicate(parsed: ParseResult) -> bool:
        host = _hostname(parsed)
        return any(_host_matches(host, domain) for domain in domains)

    return predicate


# (predicate, extractor) pairs tried in order against the parsed URL.
VIDEO_RULES: Final[tuple[tuple[Callable[[ParseResult], bool], Extractor], ...]] = (
    (_on_hosts("youtube.com", "youtu.be"), _youtube),
    (_on_hosts("instagram.com"), _instagram),
    (_on_hosts("tiktok.com"), _tiktok),
    (_on_hosts("facebook.com", "fb.com", "fb.watch"), _facebook),
    (_on_hosts("vimeo.com"), _vimeo),
)

# Looser patterns applied to the raw URL when a platform hint is stored.
_HINT_PATTERNS: Final[tuple[tuple[str, re.Pattern[str], HintBuilder], ...]] = (
    (
        "youtube",
        re.compile(
            r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/"
            r"|youtube\.com/v/|youtube\.com/shorts/)([A-Za-z0-9_-]{8,})"
        ),
        lambda url, m: VideoInfo(
            True, "youtube", f"https://www.youtube.com/embed/{m.group(1)}", m.group(1)
        ),
    ),
    (
        "instagram",
        re.compile(r"instagram\.com/(reel|tv)/([A-Za-z0-9_-]+)", re.IGNORECASE),
        lambda url, m: VideoInfo(
            True,
            "instagram",
            f"https://www.instagram.com/p/{m.group(2)}/embed/",
            m.group(2),
        ),
    ),
    (
        "tiktok",
        re.compile(r"tiktok\.com/.*/video/(\d+)"),
        lambda url, m: VideoInfo(
            True, "tiktok", f"https://www.tiktok.com/embed/v2/{m.group(1)}", m.group(1)
        ),
    ),
    (
        "facebook",
        re.compile(r"/videos/|/reel/|/watch|fb\.watch"),
        lambda url, m: VideoInfo(True, "facebook", _facebook_embed(url)),
    ),
    (
        "vimeo",
        re.compile(r"vimeo\.com/(\d+)"),
        lambda url, m: VideoInfo(
            True, "vimeo", f"https://player.vimeo.com/video/{m.group(1)}", m.group(1)
        ),
    ),
)


def detect_video(url: str, platform_hint: str | None = None) -> VideoInfo:
    """Detect whether ``url`` is an embeddable video and build its embed URL.

    Args:
        url: Link URL as stored
        platform_hint: Platform name saved with the link, used as a last resort

    Returns:
        ``VideoInfo``; ``is_video`` is false when no rule matched
    """

    if not isinstance(url, str) or not url.strip():
        return NOT_A_VIDEO

    parsed = _parse(url)
    if parsed is not None:
        for predicate, extractor in VIDEO_RULES:
            if not predicate(parsed):
                continue
            info = extractor(parsed, url)
            if info is not None:
                return info

    if platform_hint:
        hint = platform_hint.lower()
        for name, pattern, build in _HINT_PATTERNS:
            if name not in hint:
                continue
            match = pattern.search(url)
            if match:
                return build(url, match)

    return NOT_A_VIDEO
