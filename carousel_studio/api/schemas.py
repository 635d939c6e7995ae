"""API request/response schemas."""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

from carousel_studio.domain.dto import Provider


class CarouselRequest(BaseModel):
    theme: str = Field(min_length=1)
    provider: Provider
    slide_count: int = Field(default=5, ge=1, le=10)
    company_info: Optional[str] = None


class ImageUrlRequest(BaseModel):
    url: str


class ExtractRequest(BaseModel):
    url: str
    min_width: Optional[int] = Field(default=None, ge=0)
    min_height: Optional[int] = Field(default=None, ge=0)
    max_results: Optional[int] = Field(default=None, ge=1)
    strict: Optional[bool] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    capabilities: Dict[str, bool] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    detail: str
    error_type: str
