"""Stock photo search against the Unsplash API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from carousel_studio.config import UnsplashSettings
from carousel_studio.domain.dto import ImageDescriptor, ImageOrigin
from carousel_studio.domain.errors import MissingCredentials
from carousel_studio.utils import has_credential

VALID_ORIENTATIONS = ("landscape", "portrait", "squarish")


class UnsplashStockPhotoClient:
    """Search royalty-free photos on Unsplash."""

    source = "unsplash"

    def __init__(
        self,
        settings: UnsplashSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._logger = logger or logging.getLogger(__name__)

    async def search(
        self,
        query: str,
        *,
        page: int = 1,
        per_page: Optional[int] = None,
        orientation: Optional[str] = None,
    ) -> List[ImageDescriptor]:
        if not has_credential(self._settings.access_key):
            raise MissingCredentials("stock-photo search")

        params: Dict[str, Any] = {
            "query": query,
            "page": max(page, 1),
            "per_page": per_page or self._settings.per_page,
            "client_id": self._settings.access_key,
        }
        if orientation:
            if orientation not in VALID_ORIENTATIONS:
                raise ValueError(f"orientation must be one of {', '.join(VALID_ORIENTATIONS)}")
            params["orientation"] = orientation

        self._logger.info("🔍 Searching stock photos for %r (page %s)", query, params["page"])
        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds, transport=self._transport
        ) as client:
            response = await client.get(self._settings.endpoint, params=params)
            response.raise_for_status()
            data = response.json()

        items = data.get("results") if isinstance(data, dict) else None
        if not isinstance(items, list):
            self._logger.warning("Unexpected stock search payload for %r: %.200s", query, data)
            return []

        results = [self._to_descriptor(item) for item in items if isinstance(item, dict)]
        photos = [photo for photo in results if photo is not None]
        self._logger.info("✅ %d stock photos found for %r", len(photos), query)
        return photos

    @staticmethod
    def _to_descriptor(item: Dict[str, Any]) -> Optional[ImageDescriptor]:
        urls = item.get("urls")
        src = urls.get("regular") if isinstance(urls, dict) else None
        if not isinstance(src, str) or not src:
            return None
        return ImageDescriptor(
            src=src,
            alt=item.get("alt_description") or item.get("description") or "Stock photo",
            width=item.get("width"),
            height=item.get("height"),
            origin=ImageOrigin.STOCK_SEARCH,
        )


__all__ = ["UnsplashStockPhotoClient", "VALID_ORIENTATIONS"]
