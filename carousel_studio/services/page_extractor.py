"""Find usable images on arbitrary web pages.

A page is fetched through the relay chain, parsed with BeautifulSoup and
scanned by several independent passes (``<img>`` tags, inline background
images, social meta tags, JSON-LD, lazy-load/gallery markup). Candidates are
deduplicated by absolute URL in pass order, so earlier passes take priority.
Each candidate is then resolved to a reachable URL, sized, and run through the
quality filter until enough images are accepted.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup

from carousel_studio.config import ExtractionSettings
from carousel_studio.domain.dto import ImageDescriptor, ImageOrigin
from carousel_studio.domain.interfaces import DimensionLoader, PageFetcher, ReachabilityResolver
from carousel_studio.utils.urls import (
    DIRECT_IMAGE_EXTENSIONS,
    alt_from_url,
    ensure_http_url,
    has_image_extension,
    to_absolute_url,
)

QUALITY_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")

LOW_QUALITY_KEYWORDS = (
    "thumb", "thumbnail", "icon", "logo", "sprite", "avatar",
    "banner", "ads", "tracking", "pixel", "beacon", "button",
    "social", "widget", "placeholder", "loading", "spinner",
)

STRICT_LOW_QUALITY_KEYWORDS = (
    "thumb-", "thumbnail", "icon-", "logo-", "sprite-", "avatar-",
    "banner-", "ads-", "tracking-", "pixel-", "beacon-", "button-",
    "social-", "widget-", "placeholder-", "loading-", "spinner-",
    "separator-", "divider-", "watermark-", "copyright-", "signature-",
    "badge-", "medal-", "flag-", "emoji-", "emoticon-", "smiley-",
)

LAZY_SRC_ATTRIBUTES = ("src", "data-src", "data-lazy-src", "data-original")

GALLERY_SELECTORS = (
    "picture img",
    "[data-src]",
    ".product-image img",
    ".gallery-image img",
    ".carousel-item img",
    ".slider-item img",
    ".zoom-image",
    '[class*="image"] img',
    '[id*="image"] img',
)

_BACKGROUND_URL = re.compile(r"background-image\s*:\s*url\(\s*['\"]?([^'\"()]+)['\"]?\s*\)", re.IGNORECASE)
_LEADING_INT = re.compile(r"^\s*(\d+)(?!\d*\s*%)")
_OG_IMAGE_PROPERTIES = {"og:image", "og:image:url", "og:image:secure_url"}
_TWITTER_IMAGE_NAMES = {"twitter:image", "twitter:image:src"}


@dataclass
class ImageCandidate:
    """Raw image reference discovered while scanning a page."""

    src: str
    alt: str = ""
    width: Optional[int] = None
    height: Optional[int] = None


def is_quality_image(
    candidate: ImageCandidate,
    min_width: int = 300,
    min_height: int = 200,
    keywords: Sequence[str] = LOW_QUALITY_KEYWORDS,
) -> bool:
    """Accept candidates with a photo format, no low-quality markers and enough pixels.

    Unknown dimensions pass the size check.
    """
    src_lower = candidate.src.lower()
    alt_lower = (candidate.alt or "").lower()

    if not any(ext in src_lower for ext in QUALITY_EXTENSIONS):
        return False
    if any(keyword in src_lower or keyword in alt_lower for keyword in keywords):
        return False
    if candidate.width and candidate.height:
        return candidate.width >= min_width and candidate.height >= min_height
    return True


def is_direct_image_url(url: str) -> bool:
    return has_image_extension(url, DIRECT_IMAGE_EXTENSIONS)


def _parse_dimension(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    parsed = int(match.group(1))
    return parsed or None


def _first_srcset_entry(srcset: Optional[str]) -> Optional[str]:
    if not srcset:
        return None
    first = srcset.split(",")[0].strip()
    return first.split(" ")[0] if first else None


def _lazy_src(element) -> Optional[str]:
    for attribute in LAZY_SRC_ATTRIBUTES:
        value = (element.get(attribute) or "").strip()
        if value and not value.lower().startswith("data:"):
            return value
    return _first_srcset_entry(element.get("data-srcset"))


class CandidateCollector:
    """Accumulate candidates in discovery order, keyed by absolute URL."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url
        self._seen: set[str] = set()
        self.candidates: List[ImageCandidate] = []

    def add(self, src: Optional[str], alt: str = "", width: Optional[int] = None, height: Optional[int] = None) -> bool:
        if not src:
            return False
        absolute = to_absolute_url(src, self.base_url)
        if absolute is None or absolute in self._seen:
            return False
        self._seen.add(absolute)
        self.candidates.append(ImageCandidate(src=absolute, alt=alt or "", width=width, height=height))
        return True


def collect_from_img_tags(soup: BeautifulSoup, collector: CandidateCollector) -> None:
    for img in soup.find_all("img"):
        collector.add(
            _lazy_src(img),
            alt=img.get("alt") or img.get("title") or img.get("data-alt") or "",
            width=_parse_dimension(img.get("width")),
            height=_parse_dimension(img.get("height")),
        )


def collect_from_background_images(soup: BeautifulSoup, collector: CandidateCollector) -> None:
    for element in soup.find_all(style=True):
        style = element.get("style") or ""
        if "background-image" not in style.lower():
            continue
        match = _BACKGROUND_URL.search(style)
        if match:
            collector.add(
                match.group(1),
                alt=element.get("alt") or element.get("title") or "Background Image",
            )


def collect_from_meta_tags(soup: BeautifulSoup, collector: CandidateCollector) -> None:
    for meta in soup.find_all("meta"):
        prop = (meta.get("property") or "").strip().lower()
        name = (meta.get("name") or "").strip().lower()
        if prop in _OG_IMAGE_PROPERTIES or prop in _TWITTER_IMAGE_NAMES or name in _TWITTER_IMAGE_NAMES:
            collector.add(meta.get("content"), alt="Page Preview Image")


def _walk_structured_data(node: Any, collector: CandidateCollector, path: str = "") -> None:
    if isinstance(node, str):
        if is_direct_image_url(node):
            label = f"Structured Data Image ({path})" if path else "Structured Data Image"
            collector.add(node, alt=label)
    elif isinstance(node, list):
        for item in node:
            _walk_structured_data(item, collector, path)
    elif isinstance(node, dict):
        for key, value in node.items():
            lowered = str(key).lower()
            if "image" in lowered or "url" in lowered or key == "@graph":
                _walk_structured_data(value, collector, str(key))


def collect_from_structured_data(soup: BeautifulSoup, collector: CandidateCollector) -> None:
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text() or ""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            continue
        _walk_structured_data(data, collector)


def collect_from_gallery_markup(soup: BeautifulSoup, collector: CandidateCollector) -> None:
    for selector in GALLERY_SELECTORS:
        for element in soup.select(selector):
            collector.add(
                _lazy_src(element),
                alt=element.get("alt") or element.get("title") or "Product Image",
                width=_parse_dimension(element.get("width")),
                height=_parse_dimension(element.get("height")),
            )


COLLECTION_PASSES: Sequence[Callable[[BeautifulSoup, CandidateCollector], None]] = (
    collect_from_img_tags,
    collect_from_background_images,
    collect_from_meta_tags,
    collect_from_structured_data,
    collect_from_gallery_markup,
)


def collect_candidates(html: str, page_url: str) -> List[ImageCandidate]:
    """Run every collection pass over ``html`` and return the deduplicated candidates."""
    soup = BeautifulSoup(html, "html.parser")
    base_url = page_url
    base_tag = soup.find("base", href=True)
    if base_tag is not None:
        base_url = to_absolute_url(base_tag["href"], page_url) or page_url

    collector = CandidateCollector(base_url)
    for collect in COLLECTION_PASSES:
        collect(soup, collector)
    return collector.candidates


class PageImageExtractor:
    """Turn a page URL into a bounded list of reachable, quality-filtered images."""

    def __init__(
        self,
        fetcher: PageFetcher,
        resolver: ReachabilityResolver,
        dimension_loader: DimensionLoader,
        *,
        settings: Optional[ExtractionSettings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._fetcher = fetcher
        self._resolver = resolver
        self._dimensions = dimension_loader
        self._settings = settings or ExtractionSettings()
        self._logger = logger or logging.getLogger(__name__)

    async def extract(
        self,
        page_url: str,
        min_width: Optional[int] = None,
        min_height: Optional[int] = None,
        max_results: Optional[int] = None,
        strict: Optional[bool] = None,
    ) -> List[ImageDescriptor]:
        page_url = ensure_http_url(page_url)
        limits: Dict[str, Any] = {
            "min_width": self._settings.min_width if min_width is None else min_width,
            "min_height": self._settings.min_height if min_height is None else min_height,
            "keywords": self._keywords(strict),
        }
        limit = self._settings.max_results if max_results is None else max_results

        self._logger.info("🚀 Starting image extraction for %s", page_url)
        if is_direct_image_url(page_url):
            self._logger.info("📸 %s looks like a direct image", page_url)
            return await self._extract_direct(page_url, limits)

        html = await self._fetcher.fetch_through_relays(page_url)
        candidates = collect_candidates(html, page_url)
        self._logger.info("🔍 Found %d unique image candidates on %s", len(candidates), page_url)
        return await self._select_quality(candidates, limits, limit)

    def _keywords(self, strict: Optional[bool]) -> Sequence[str]:
        use_strict = self._settings.strict_quality_filter if strict is None else strict
        return STRICT_LOW_QUALITY_KEYWORDS if use_strict else LOW_QUALITY_KEYWORDS

    async def _extract_direct(self, url: str, limits: Dict[str, Any]) -> List[ImageDescriptor]:
        working = await self._resolver.resolve_working_variant(url)
        if working is None:
            self._logger.info("❌ Direct image is not reachable: %s", url)
            return []
        candidate = await self._with_dimensions(ImageCandidate(src=working, alt=alt_from_url(url, "Direct Image")))
        if not is_quality_image(candidate, **limits):
            self._logger.info("❌ Direct image rejected: %.60s (%sx%s)", candidate.src, candidate.width, candidate.height)
            return []
        return [self._descriptor(candidate, ImageOrigin.DIRECT_URL)]

    async def _select_quality(
        self, candidates: Sequence[ImageCandidate], limits: Dict[str, Any], max_results: int
    ) -> List[ImageDescriptor]:
        accepted: List[ImageDescriptor] = []
        for candidate in candidates:
            if len(accepted) >= max_results:
                break
            working = await self._resolver.resolve_working_variant(candidate.src)
            if working is None:
                self._logger.warning("❌ Unreachable image skipped: %.60s", candidate.src)
                continue

            resolved = await self._with_dimensions(replace(candidate, src=working))
            if is_quality_image(resolved, **limits):
                accepted.append(self._descriptor(resolved, ImageOrigin.PAGE_EXTRACTION))
                self._logger.info("✅ Image accepted: %.60s (%sx%s)", resolved.src, resolved.width, resolved.height)
            else:
                self._logger.debug("Image rejected: %.60s (%sx%s)", resolved.src, resolved.width, resolved.height)

        self._logger.info("✅ %d quality images selected from %d candidates", len(accepted), len(candidates))
        return accepted

    async def _with_dimensions(self, candidate: ImageCandidate) -> ImageCandidate:
        if candidate.width and candidate.height:
            return candidate
        dimensions = await self._dimensions.load(candidate.src)
        if dimensions is None:
            return candidate
        return replace(candidate, width=dimensions.width, height=dimensions.height)

    @staticmethod
    def _descriptor(candidate: ImageCandidate, origin: ImageOrigin) -> ImageDescriptor:
        return ImageDescriptor(
            src=candidate.src,
            alt=candidate.alt,
            width=candidate.width,
            height=candidate.height,
            origin=origin,
        )


__all__ = [
    "COLLECTION_PASSES",
    "CandidateCollector",
    "ImageCandidate",
    "LOW_QUALITY_KEYWORDS",
    "PageImageExtractor",
    "QUALITY_EXTENSIONS",
    "STRICT_LOW_QUALITY_KEYWORDS",
    "collect_candidates",
    "is_direct_image_url",
    "is_quality_image",
]
