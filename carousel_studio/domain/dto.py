"""Data transfer objects shared across the services."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ImageOrigin(str, Enum):
    STOCK_SEARCH = "stock-search"
    UPLOAD = "upload"
    DIRECT_URL = "direct-url"
    PAGE_EXTRACTION = "page-extraction"


class Provider(str, Enum):
    """Selectable chat-completion backends."""

    OPENAI = "openai"
    GROQ = "groq"
    GEMINI = "gemini"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class ImageDescriptor(BaseModel):
    """An image ready to be placed on a slide.

    Descriptors are frozen; callers copy them into their own slide state.
    """

    model_config = ConfigDict(frozen=True)

    src: str
    alt: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    origin: ImageOrigin


@dataclass(frozen=True)
class ImageDimensions:
    width: int
    height: int


class SlideDraft(BaseModel):
    """One slide as returned by the language model, before image resolution."""

    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(min_length=1)
    image_query: str = Field(alias="imageQuery", min_length=1)

    @field_validator("text", "image_query", mode="before")
    @classmethod
    def _strip(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class CarouselDraft(BaseModel):
    slides: List[SlideDraft]


class CarouselSlide(BaseModel):
    """A generated slide with its resolved background image."""

    model_config = ConfigDict(frozen=True)

    id: int
    text: str
    image_url: str


__all__ = [
    "CarouselDraft",
    "CarouselSlide",
    "ImageDescriptor",
    "ImageDimensions",
    "ImageOrigin",
    "Provider",
    "SlideDraft",
]
