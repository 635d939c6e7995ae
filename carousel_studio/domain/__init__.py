"""Domain models, errors and service protocols."""

from .dto import (
    CarouselDraft,
    CarouselSlide,
    ImageDescriptor,
    ImageDimensions,
    ImageOrigin,
    Provider,
    SlideDraft,
)
from .errors import (
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

__all__ = [
    "AllRelaysExhausted",
    "CarouselDraft",
    "CarouselSlide",
    "CarouselStudioError",
    "FileTooLarge",
    "ImageDescriptor",
    "ImageDimensions",
    "ImageOrigin",
    "ImageUnreachable",
    "InvalidUrl",
    "MissingCredentials",
    "NoQualityImagesFound",
    "Provider",
    "ProviderHttpError",
    "SchemaValidationError",
    "SlideDraft",
    "UnsupportedFileType",
]
