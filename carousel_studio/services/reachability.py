"""Decide whether candidate image URLs can actually be retrieved."""

from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional

import httpx

from carousel_studio.config import CacheSettings
from carousel_studio.services.cache import TTLCache, build_reachability_cache

_URL_REWRITES: List[Callable[[str], str]] = [
    lambda url: url.split("?")[0],
    lambda url: re.sub(r"/w_\d+,h_\d+", "/w_800,h_600", url),
    lambda url: re.sub(r"/resize/\d+x\d+", "/resize/800x600", url),
    lambda url: re.sub(r"&w=\d+&h=\d+", "&w=800&h=600", url),
    lambda url: url.replace(".webp", ".jpg"),
    lambda url: url.replace(".avif", ".jpg"),
    lambda url: re.sub(r"cdn\d+\.", "cdn.", url),
    lambda url: re.sub(r"img\d+\.", "img.", url),
    lambda url: re.sub(r"^http://", "https://", url),
]

# HEAD is often refused by image CDNs; retry those with a one-byte GET.
_HEAD_REJECTED = {405, 501}


def url_variants(original_url: str) -> List[str]:
    """Return the original URL followed by its common CDN rewrites, without repeats."""
    variants: List[str] = [original_url]
    for rewrite in _URL_REWRITES:
        candidate = rewrite(original_url)
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants


class ImageReachabilityResolver:
    """Probe image URLs with a cached HEAD request."""

    def __init__(
        self,
        *,
        cache: Optional[TTLCache[bool]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._cache = cache if cache is not None else build_reachability_cache(CacheSettings())
        self._transport = transport
        self._timeout = timeout
        self._logger = logger or logging.getLogger(__name__)

    async def probe(self, url: str) -> bool:
        cached = self._cache.get(url)
        if cached is not None:
            self._logger.debug("🎯 Cache hit for image probe: %.60s", url)
            return cached

        reachable = await self._probe_uncached(url)
        self._cache.set(url, reachable)
        return reachable

    async def resolve_working_variant(self, original_url: str) -> Optional[str]:
        for variant in url_variants(original_url):
            if await self.probe(variant):
                if variant != original_url:
                    self._logger.info("✅ Working image variant %s for %s", variant, original_url)
                return variant
        self._logger.info("❌ No variant of %s is reachable", original_url)
        return None

    async def _probe_uncached(self, url: str) -> bool:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport, follow_redirects=True
            ) as client:
                response = await client.head(url)
                if response.status_code in _HEAD_REJECTED:
                    response = await client.get(url, headers={"Range": "bytes=0-0"})
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self._logger.debug("Probe failed for %s: %s", url, exc)
            return False

        if response.status_code >= 400:
            return False
        content_type = response.headers.get("content-type", "")
        if content_type.lower().startswith("text/"):
            return False
        return True


__all__ = ["ImageReachabilityResolver", "url_variants"]
