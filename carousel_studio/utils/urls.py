"""URL helpers shared by the image acquisition services."""

from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import unquote, urljoin, urlparse

from carousel_studio.domain.errors import InvalidUrl

DIRECT_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp", ".svg")

_SKIPPED_SCHEMES = ("data:", "blob:", "javascript:", "about:")


def ensure_http_url(url: str) -> str:
    """Return ``url`` stripped, or raise InvalidUrl if it is not an absolute http(s) URL."""
    candidate = (url or "").strip()
    try:
        parsed = urlparse(candidate)
    except ValueError as exc:
        raise InvalidUrl(url, str(exc)) from exc
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidUrl(url)
    return candidate


def has_image_extension(url: str, extensions: Iterable[str] = DIRECT_IMAGE_EXTENSIONS) -> bool:
    """True when the URL path mentions one of ``extensions`` (case-insensitive)."""
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False
    return any(ext in path for ext in extensions)


def to_absolute_url(src: str, base_url: str) -> Optional[str]:
    """Resolve ``src`` against ``base_url``; None when it cannot become an http(s) URL."""
    src = (src or "").strip()
    if not src or src.lower().startswith(_SKIPPED_SCHEMES):
        return None
    try:
        absolute = urljoin(base_url, src)
        parsed = urlparse(absolute)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return absolute


def alt_from_url(url: str, default: str = "Image") -> str:
    """Derive alt text from the file name in ``url``: ``/a/sunset.beach.jpg`` -> ``sunset``."""
    try:
        path = urlparse(url).path
    except ValueError:
        return default
    name = unquote(path.rstrip("/").rsplit("/", 1)[-1]).split(".")[0]
    return name or default


__all__ = [
    "DIRECT_IMAGE_EXTENSIONS",
    "alt_from_url",
    "ensure_http_url",
    "has_image_extension",
    "to_absolute_url",
]
