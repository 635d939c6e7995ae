"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, List, Optional, Type

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse

from carousel_studio.api.schemas import (
    CarouselRequest,
    ErrorResponse,
    ExtractRequest,
    HealthResponse,
    ImageUrlRequest,
)
from carousel_studio.config import get_settings
from carousel_studio.domain.dto import CarouselSlide, ImageDescriptor
from carousel_studio.domain.errors import (
    AllRelaysExhausted,
    CarouselStudioError,
    FileTooLarge,
    ImageUnreachable,
    InvalidUrl,
    MissingCredentials,
    NoQualityImagesFound,
    ProviderHttpError,
    SchemaValidationError,
    UnsupportedFileType,
)
from carousel_studio.services.carousel_generator import CarouselGenerator
from carousel_studio.services.image_service import ImageService, build_image_service
from carousel_studio.services.stock_photos import UnsplashStockPhotoClient

logger = logging.getLogger(__name__)

app = FastAPI(title="Carousel Studio Service")

ERROR_STATUS: Dict[Type[CarouselStudioError], int] = {
    InvalidUrl: 400,
    ImageUnreachable: 400,
    NoQualityImagesFound: 404,
    FileTooLarge: 413,
    UnsupportedFileType: 415,
    SchemaValidationError: 422,
    AllRelaysExhausted: 502,
    ProviderHttpError: 502,
    MissingCredentials: 503,
}


def status_for(exc: CarouselStudioError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return 500


@app.exception_handler(CarouselStudioError)
async def carousel_studio_error_handler(request: Request, exc: CarouselStudioError):
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=str(exc), error_type=type(exc).__name__).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unexpected failures with their traceback and return a summarized error."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            detail=f"{type(exc).__name__}: {exc}", error_type=type(exc).__name__
        ).model_dump(),
    )


@lru_cache(maxsize=1)
def get_image_service() -> ImageService:
    return build_image_service(get_settings())


@lru_cache(maxsize=1)
def get_carousel_generator() -> CarouselGenerator:
    settings = get_settings()
    return CarouselGenerator(settings, UnsplashStockPhotoClient(settings.unsplash))


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(capabilities=get_settings().capabilities())


@app.post("/carousel", response_model=List[CarouselSlide])
async def create_carousel(
    request: CarouselRequest, generator: CarouselGenerator = Depends(get_carousel_generator)
):
    try:
        return await generator.generate(
            request.theme,
            request.provider,
            slide_count=request.slide_count,
            company_info=request.company_info,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/images/search", response_model=List[ImageDescriptor])
async def search_images(
    query: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=30),
    orientation: Optional[str] = None,
    images: ImageService = Depends(get_image_service),
):
    try:
        return await images.search_stock_photos(query, page=page, per_page=per_page, orientation=orientation)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/images/url", response_model=ImageDescriptor)
async def process_image_url(request: ImageUrlRequest, images: ImageService = Depends(get_image_service)):
    return await images.process_image_url(request.url)


@app.post("/images/extract", response_model=List[ImageDescriptor])
async def extract_images(request: ExtractRequest, images: ImageService = Depends(get_image_service)):
    return await images.extract_from_page(
        request.url,
        min_width=request.min_width,
        min_height=request.min_height,
        max_results=request.max_results,
        strict=request.strict,
    )


@app.post("/images/upload", response_model=ImageDescriptor)
async def upload_image(file: UploadFile = File(...), images: ImageService = Depends(get_image_service)):
    data = await file.read()
    return images.upload_image(file.filename or "", file.content_type, data)
