"""Protocols describing the seams between services."""

from __future__ import annotations

from typing import List, Optional, Protocol

from carousel_studio.domain.dto import ImageDescriptor, ImageDimensions


class StockPhotoSearch(Protocol):
    """Keyword search against a curated stock-photo catalogue."""

    async def search(
        self,
        query: str,
        *,
        page: int = 1,
        per_page: Optional[int] = None,
        orientation: Optional[str] = None,
    ) -> List[ImageDescriptor]:
        """Return descriptors for the photos matching ``query``."""


class PageFetcher(Protocol):
    async def fetch_through_relays(self, target_url: str) -> str:
        """Return the text body of ``target_url``."""


class ReachabilityResolver(Protocol):
    async def probe(self, url: str) -> bool:
        """Return True when ``url`` can be retrieved."""

    async def resolve_working_variant(self, original_url: str) -> Optional[str]:
        """Return the first reachable rewrite of ``original_url``."""


class DimensionLoader(Protocol):
    async def load(self, url: str) -> Optional[ImageDimensions]:
        """Return pixel dimensions or None when they cannot be determined."""


__all__ = ["DimensionLoader", "PageFetcher", "ReachabilityResolver", "StockPhotoSearch"]
