"""Generate carousel slide copy with an LLM and attach a stock photo to each slide."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from carousel_studio.config import AppSettings
from carousel_studio.domain.dto import CarouselDraft, CarouselSlide, Provider, SlideDraft
from carousel_studio.domain.errors import ProviderHttpError, SchemaValidationError
from carousel_studio.domain.interfaces import StockPhotoSearch
from carousel_studio.services.providers import build_provider_request, unwrap_provider_response

MIN_SLIDES = 1
MAX_SLIDES = 10
HOOK_MAX_CHARS = 80
BODY_MAX_CHARS = 250


def build_carousel_prompt(theme: str, slide_count: int, company_info: Optional[str] = None) -> str:
    company_block = ""
    if company_info and company_info.strip():
        company_block = f'\nCompany information:\n"{company_info.strip()}"\n'

    return f"""
You are a social media marketing expert. Based on the theme below, write the content
for a {slide_count}-slide social media carousel.
{company_block}
Carousel theme:
"{theme.strip()}"

Your answer MUST be a valid JSON object with a single key "slides", an array of exactly
{slide_count} objects. Each object must have two properties:
1. "text": the slide copy. Slide 1 is a short attention-grabbing hook (at most
   {HOOK_MAX_CHARS} characters). Every other slide explains one idea (at most
   {BODY_MAX_CHARS} characters).
2. "imageQuery": a concise 2-3 word search query for a relevant background photo.

Example:
{{
  "slides": [
    {{"text": "Stop losing customers at checkout", "imageQuery": "online shopping"}},
    {{"text": "Most carts are abandoned because of surprise costs. Show the full price early.", "imageQuery": "price tag"}}
  ]
}}
""".strip()


def parse_json_object(raw_output: str) -> Dict[str, Any]:
    """Parse a JSON object from model output, tolerating code fences and extra text."""
    try:
        parsed = json.loads(raw_output)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    fenced = re.search(r"```(?:json)?\s*(\{[\s\S]*\})\s*```", raw_output)
    if fenced:
        try:
            return json.loads(fenced.group(1))
        except json.JSONDecodeError:
            pass

    braces = re.search(r"\{[\s\S]*\}", raw_output)
    if braces:
        try:
            return json.loads(braces.group(0))
        except json.JSONDecodeError:
            pass

    raise SchemaValidationError("reply is not a JSON object")


def validate_slides(content: Dict[str, Any], slide_count: int) -> List[SlideDraft]:
    try:
        draft = CarouselDraft.model_validate(content)
    except ValidationError as exc:
        raise SchemaValidationError(str(exc)) from exc
    if len(draft.slides) != slide_count:
        raise SchemaValidationError(f"expected {slide_count} slides, got {len(draft.slides)}")
    return draft.slides


class CarouselGenerator:
    """Turn a theme into slides with text and a background image URL."""

    def __init__(
        self,
        settings: AppSettings,
        stock_search: StockPhotoSearch,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._settings = settings
        self._stock_search = stock_search
        self._transport = transport
        self._logger = logger or logging.getLogger(__name__)

    async def generate(
        self,
        theme: str,
        provider: Provider,
        slide_count: int = 5,
        company_info: Optional[str] = None,
    ) -> List[CarouselSlide]:
        if not theme or not theme.strip():
            raise ValueError("theme must not be empty")
        if not MIN_SLIDES <= slide_count <= MAX_SLIDES:
            raise ValueError(f"slide_count must be between {MIN_SLIDES} and {MAX_SLIDES}")
        provider = Provider(provider)

        prompt = build_carousel_prompt(theme, slide_count, company_info)
        request = build_provider_request(provider, prompt, self._settings)

        self._logger.info("🤖 Requesting %d slides from %s", slide_count, provider.value)
        payload = await self._post(provider, request.url, request.json, request.headers)
        content = parse_json_object(unwrap_provider_response(provider, payload))
        drafts = validate_slides(content, slide_count)

        image_urls = await asyncio.gather(*(self._image_for_query(draft.image_query) for draft in drafts))
        slides = [
            CarouselSlide(id=index, text=draft.text, image_url=image_url)
            for index, (draft, image_url) in enumerate(zip(drafts, image_urls), start=1)
        ]
        self._logger.info("✅ Generated %d slides with %s", len(slides), provider.value)
        return slides

    async def _post(
        self, provider: Provider, url: str, body: Dict[str, Any], headers: Dict[str, str]
    ) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.generation.request_timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(url, json=body, headers=headers)
        except httpx.RequestError as exc:
            self._logger.error("AI request to %s failed: %s", provider.value, exc)
            raise ProviderHttpError(None, str(exc) or type(exc).__name__, provider.value) from exc

        if not response.is_success:
            self._logger.error("AI API error (%s): %s", provider.value, response.status_code)
            raise ProviderHttpError(response.status_code, response.text, provider.value)

        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise SchemaValidationError(f"{provider.value} response is not JSON") from exc
        if not isinstance(payload, dict):
            raise SchemaValidationError(f"{provider.value} response is not a JSON object")
        return payload

    async def _image_for_query(self, query: str) -> str:
        fallback = self._settings.generation.fallback_image_url
        try:
            results = await self._stock_search.search(query, per_page=1)
        except Exception as exc:
            self._logger.warning("⚠️ Image search failed for %r, using fallback: %s", query, exc, exc_info=True)
            return fallback
        if not results:
            self._logger.warning("⚠️ No stock photo for %r, using fallback", query)
            return fallback
        return results[0].src


__all__ = [
    "CarouselGenerator",
    "build_carousel_prompt",
    "parse_json_object",
    "validate_slides",
]
