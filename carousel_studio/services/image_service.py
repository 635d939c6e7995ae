"""Single entry point for every way an image can enter a carousel."""

from __future__ import annotations

import base64
import logging
from pathlib import PurePath
from typing import List, Optional

import httpx

from carousel_studio.config import AppSettings, UploadSettings
from carousel_studio.domain.dto import ImageDescriptor, ImageOrigin
from carousel_studio.domain.errors import (
    FileTooLarge,
    ImageUnreachable,
    InvalidUrl,
    NoQualityImagesFound,
    UnsupportedFileType,
)
from carousel_studio.domain.interfaces import DimensionLoader, ReachabilityResolver, StockPhotoSearch
from carousel_studio.services.cache import build_dimensions_cache, build_html_cache, build_reachability_cache
from carousel_studio.services.dimensions import ImageDimensionLoader, dimensions_from_bytes
from carousel_studio.services.page_extractor import PageImageExtractor
from carousel_studio.services.reachability import ImageReachabilityResolver
from carousel_studio.services.relay_chain import RelayChain
from carousel_studio.services.stock_photos import UnsplashStockPhotoClient
from carousel_studio.utils.urls import alt_from_url, ensure_http_url, has_image_extension

# SVG is accepted on pages but not as a standalone slide background.
DIRECT_URL_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp")


class ImageService:
    """Stock search, upload, direct URL and page extraction behind one interface.

    Every path returns ``ImageDescriptor`` objects tagged with their origin.
    """

    def __init__(
        self,
        *,
        stock_search: StockPhotoSearch,
        extractor: PageImageExtractor,
        resolver: ReachabilityResolver,
        dimension_loader: DimensionLoader,
        upload_settings: Optional[UploadSettings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._stock_search = stock_search
        self._extractor = extractor
        self._resolver = resolver
        self._dimensions = dimension_loader
        self._upload = upload_settings or UploadSettings()
        self._logger = logger or logging.getLogger(__name__)

    async def search_stock_photos(
        self,
        query: str,
        *,
        page: int = 1,
        per_page: Optional[int] = None,
        orientation: Optional[str] = None,
    ) -> List[ImageDescriptor]:
        query = (query or "").strip()
        if not query:
            raise ValueError("query must not be empty")
        return await self._stock_search.search(query, page=page, per_page=per_page, orientation=orientation)

    def upload_image(self, filename: str, content_type: Optional[str], data: bytes) -> ImageDescriptor:
        """Validate an uploaded file and return it as a ``data:`` URL descriptor."""
        content_type = (content_type or "").lower()
        if content_type not in self._upload.allowed_types:
            raise UnsupportedFileType(content_type)
        if len(data) > self._upload.max_bytes:
            raise FileTooLarge(len(data), self._upload.max_bytes)

        dimensions = dimensions_from_bytes(data)
        if dimensions is None:
            raise UnsupportedFileType(content_type, "file could not be decoded as an image")

        encoded = base64.b64encode(data).decode("ascii")
        alt = PurePath(filename or "").stem or "Uploaded image"
        self._logger.info("📤 Upload accepted: %s (%dx%d, %d bytes)", filename, dimensions.width, dimensions.height, len(data))
        return ImageDescriptor(
            src=f"data:{content_type};base64,{encoded}",
            alt=alt,
            width=dimensions.width,
            height=dimensions.height,
            origin=ImageOrigin.UPLOAD,
        )

    async def process_image_url(self, url: str) -> ImageDescriptor:
        url = ensure_http_url(url)
        if not has_image_extension(url, DIRECT_URL_EXTENSIONS):
            raise InvalidUrl(url, "URL does not look like an image")

        working = await self._resolver.resolve_working_variant(url)
        if working is None:
            raise ImageUnreachable(url)

        dimensions = await self._dimensions.load(working)
        return ImageDescriptor(
            src=working,
            alt=alt_from_url(url, "Custom Image"),
            width=dimensions.width if dimensions else None,
            height=dimensions.height if dimensions else None,
            origin=ImageOrigin.DIRECT_URL,
        )

    async def extract_from_page(
        self,
        url: str,
        *,
        min_width: Optional[int] = None,
        min_height: Optional[int] = None,
        max_results: Optional[int] = None,
        strict: Optional[bool] = None,
    ) -> List[ImageDescriptor]:
        images = await self._extractor.extract(
            url,
            min_width=min_width,
            min_height=min_height,
            max_results=max_results,
            strict=strict,
        )
        if not images:
            self._logger.error("No quality images found on %s", url)
            raise NoQualityImagesFound(url)
        return images


def build_image_service(
    settings: AppSettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    logger: Optional[logging.Logger] = None,
) -> ImageService:
    """Wire the default relay chain, resolver, dimension loader and stock client."""
    resolver = ImageReachabilityResolver(
        cache=build_reachability_cache(settings.cache),
        transport=transport,
        timeout=settings.extraction.probe_timeout_seconds,
    )
    dimension_loader = ImageDimensionLoader(
        cache=build_dimensions_cache(settings.cache),
        transport=transport,
        timeout=settings.extraction.dimension_timeout_seconds,
    )
    relays = RelayChain(settings=settings.relay, cache=build_html_cache(settings.cache), transport=transport)
    extractor = PageImageExtractor(relays, resolver, dimension_loader, settings=settings.extraction)
    return ImageService(
        stock_search=UnsplashStockPhotoClient(settings.unsplash, transport=transport),
        extractor=extractor,
        resolver=resolver,
        dimension_loader=dimension_loader,
        upload_settings=settings.upload,
        logger=logger,
    )


__all__ = ["DIRECT_URL_EXTENSIONS", "ImageService", "build_image_service"]
