"""Tests for AI carousel generation."""

from __future__ import annotations

import json

import httpx
import pytest

from carousel_studio.config import (
    AppSettings,
    GeminiSettings,
    GenerationSettings,
    OpenAISettings,
    UnsplashSettings,
)
from carousel_studio.domain.dto import ImageDescriptor, ImageOrigin, Provider
from carousel_studio.domain.errors import MissingCredentials, ProviderHttpError, SchemaValidationError
from carousel_studio.services.carousel_generator import (
    CarouselGenerator,
    build_carousel_prompt,
    parse_json_object,
)
from carousel_studio.services.stock_photos import UnsplashStockPhotoClient

FALLBACK = "https://images.pexels.test/fallback.jpeg"


class FakeStockSearch:
    def __init__(self, failing=(), empty=(), broken=()) -> None:
        self.failing = set(failing)
        self.broken = set(broken)
        self.empty = set(empty)
        self.queries: list[str] = []

    async def search(self, query, *, page=1, per_page=None, orientation=None):
        self.queries.append(query)
        if query in self.failing:
            raise httpx.ConnectError("stock search down")
        if query in self.broken:
            raise RuntimeError("stock client bug")
        if query in self.empty:
            return []
        return [ImageDescriptor(src=f"https://stock.test/{query}.jpg", origin=ImageOrigin.STOCK_SEARCH)]


def slides_payload(count: int) -> dict:
    return {"slides": [{"text": f"Slide {i} copy", "imageQuery": f"query{i}"} for i in range(1, count + 1)]}


def chat_response(content) -> dict:
    text = content if isinstance(content, str) else json.dumps(content)
    return {"choices": [{"message": {"content": text}}]}


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        openai=OpenAISettings(api_key="sk-live-openai"),
        gemini=GeminiSettings(api_key="gm-live-gemini"),
        generation=GenerationSettings(fallback_image_url=FALLBACK),
    )


def make_generator(settings, handler, stock=None) -> CarouselGenerator:
    return CarouselGenerator(settings, stock or FakeStockSearch(), transport=httpx.MockTransport(handler))


class TestCarouselGenerator:
    @pytest.mark.asyncio
    async def test_generates_slides_with_images(self, settings):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=chat_response(slides_payload(5)))

        slides = await make_generator(settings, handler).generate("Remote work tips", Provider.OPENAI)

        assert [s.id for s in slides] == [1, 2, 3, 4, 5]
        assert slides[0].text == "Slide 1 copy"
        assert slides[4].image_url == "https://stock.test/query5.jpg"
        assert "Remote work tips" in bodies[0]["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_wrong_slide_count_fails_before_image_search(self, settings):
        stock = FakeStockSearch()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=chat_response(slides_payload(4)))

        with pytest.raises(SchemaValidationError):
            await make_generator(settings, handler, stock).generate("theme", Provider.OPENAI, slide_count=5)
        assert stock.queries == []

    @pytest.mark.asyncio
    async def test_failed_image_search_uses_fallback_for_that_slide_only(self, settings):
        stock = FakeStockSearch(failing={"query3"})

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=chat_response(slides_payload(5)))

        slides = await make_generator(settings, handler, stock).generate("theme", Provider.OPENAI)

        assert slides[2].image_url == FALLBACK
        assert [s.image_url for s in slides if s.id != 3] == [
            "https://stock.test/query1.jpg",
            "https://stock.test/query2.jpg",
            "https://stock.test/query4.jpg",
            "https://stock.test/query5.jpg",
        ]

    @pytest.mark.asyncio
    async def test_unexpected_image_search_error_uses_fallback(self, settings):
        stock = FakeStockSearch(broken={"query3"})

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=chat_response(slides_payload(5)))

        slides = await make_generator(settings, handler, stock).generate("theme", Provider.OPENAI)

        assert len(slides) == 5
        assert slides[2].image_url == FALLBACK
        assert slides[3].image_url == "https://stock.test/query4.jpg"
        assert len(stock.queries) == 5

    @pytest.mark.asyncio
    async def test_malformed_stock_payload_uses_fallback(self, settings):
        def stock_handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"oops": 1}])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=chat_response(slides_payload(2)))

        stock = UnsplashStockPhotoClient(
            UnsplashSettings(access_key="live-access-key"), transport=httpx.MockTransport(stock_handler)
        )
        slides = await make_generator(settings, handler, stock).generate("theme", Provider.OPENAI, slide_count=2)

        assert [s.image_url for s in slides] == [FALLBACK, FALLBACK]

    @pytest.mark.asyncio
    async def test_empty_image_search_uses_fallback(self, settings):
        stock = FakeStockSearch(empty={"query1"})

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=chat_response(slides_payload(1)))

        slides = await make_generator(settings, handler, stock).generate("theme", Provider.OPENAI, slide_count=1)

        assert slides[0].image_url == FALLBACK

    @pytest.mark.asyncio
    async def test_gemini_response_is_unwrapped(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith(":generateContent")
            text = json.dumps(slides_payload(3))
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})

        slides = await make_generator(settings, handler).generate("theme", Provider.GEMINI, slide_count=3)

        assert len(slides) == 3

    @pytest.mark.asyncio
    async def test_code_fenced_reply_is_accepted(self, settings):
        fenced = "Here you go:\n```json\n" + json.dumps(slides_payload(2)) + "\n```"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=chat_response(fenced))

        slides = await make_generator(settings, handler).generate("theme", Provider.OPENAI, slide_count=2)

        assert [s.text for s in slides] == ["Slide 1 copy", "Slide 2 copy"]

    @pytest.mark.asyncio
    async def test_blank_slide_text_is_rejected(self, settings):
        payload = {"slides": [{"text": "   ", "imageQuery": "office"}]}

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=chat_response(payload))

        with pytest.raises(SchemaValidationError):
            await make_generator(settings, handler).generate("theme", Provider.OPENAI, slide_count=1)

    @pytest.mark.asyncio
    async def test_non_2xx_raises_provider_error(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, text="rate limited")

        with pytest.raises(ProviderHttpError) as excinfo:
            await make_generator(settings, handler).generate("theme", Provider.OPENAI)
        assert excinfo.value.status == 429
        assert excinfo.value.body == "rate limited"

    @pytest.mark.asyncio
    async def test_transport_failure_has_no_status(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ProviderHttpError) as excinfo:
            await make_generator(settings, handler).generate("theme", Provider.OPENAI)
        assert excinfo.value.status is None

    @pytest.mark.asyncio
    async def test_missing_credentials(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with pytest.raises(MissingCredentials):
            await make_generator(settings, handler).generate("theme", Provider.GROQ)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("slide_count", [0, 11])
    async def test_slide_count_bounds(self, settings, slide_count):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with pytest.raises(ValueError):
            await make_generator(settings, handler).generate("theme", Provider.OPENAI, slide_count=slide_count)


class TestPromptAndParsing:
    def test_prompt_mentions_count_theme_and_company(self):
        prompt = build_carousel_prompt("Healthy breakfasts", 7, company_info="Acme Bakery")

        assert "7-slide" in prompt
        assert "7 objects" in prompt
        assert "Healthy breakfasts" in prompt
        assert "Acme Bakery" in prompt

    def test_prompt_without_company(self):
        assert "Company information" not in build_carousel_prompt("Theme", 3)

    def test_parse_plain_object(self):
        assert parse_json_object('{"slides": []}') == {"slides": []}

    def test_parse_object_inside_prose(self):
        assert parse_json_object('Sure! {"slides": []} Hope it helps') == {"slides": []}

    def test_parse_rejects_non_objects(self):
        with pytest.raises(SchemaValidationError):
            parse_json_object("[1, 2, 3]")
