"""Load image pixel dimensions by decoding just enough of the image header."""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Optional

import httpx
from PIL import Image, ImageFile, UnidentifiedImageError

from carousel_studio.config import CacheSettings
from carousel_studio.domain.dto import ImageDimensions
from carousel_studio.services.cache import TTLCache, build_dimensions_cache

MAX_HEADER_BYTES = 10 * 1024 * 1024


def dimensions_from_bytes(data: bytes) -> Optional[ImageDimensions]:
    """Decode ``data`` with Pillow and return its size, or None if undecodable."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
        return None
    return ImageDimensions(width=width, height=height)


class ImageDimensionLoader:
    """Stream an image until Pillow can report its size.

    The whole load is bounded by ``timeout``; on timeout, HTTP failure or an
    undecodable body the dimensions are treated as unknown.
    """

    def __init__(
        self,
        *,
        cache: Optional[TTLCache[ImageDimensions]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 5.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._cache = cache if cache is not None else build_dimensions_cache(CacheSettings())
        self._transport = transport
        self._timeout = timeout
        self._logger = logger or logging.getLogger(__name__)

    async def load(self, url: str) -> Optional[ImageDimensions]:
        cached = self._cache.get(url)
        if cached is not None:
            self._logger.debug("🎯 Cache hit for dimensions: %.60s", url)
            return cached

        try:
            dimensions = await asyncio.wait_for(self._read_header(url), timeout=self._timeout)
        except asyncio.TimeoutError:
            self._logger.info("⏱️ Dimension load timed out after %.1fs: %.80s", self._timeout, url)
            return None
        except (httpx.HTTPError, httpx.InvalidURL, Image.DecompressionBombError, OSError, ValueError) as exc:
            self._logger.info("Dimension load failed for %.80s: %s", url, exc)
            return None

        if dimensions is not None:
            self._cache.set(url, dimensions)
        return dimensions

    async def _read_header(self, url: str) -> Optional[ImageDimensions]:
        parser = ImageFile.Parser()
        received = 0
        async with httpx.AsyncClient(transport=self._transport, follow_redirects=True) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    parser.feed(chunk)
                    if parser.image is not None:
                        width, height = parser.image.size
                        return ImageDimensions(width=width, height=height)
                    if received > MAX_HEADER_BYTES:
                        break
        return None


__all__ = ["ImageDimensionLoader", "dimensions_from_bytes"]
