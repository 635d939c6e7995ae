"""Tests for fetching pages through the relay chain."""

from __future__ import annotations

import json
import random

import httpx
import pytest

from carousel_studio.config import RelaySettings
from carousel_studio.domain.errors import AllRelaysExhausted
from carousel_studio.services.cache import TTLCache
from carousel_studio.services.relay_chain import (
    DEFAULT_RELAYS,
    RelayChain,
    RelayDescriptor,
    json_contents_body,
)

TARGET = "https://news.example.org/article"
LONG_HTML = "<html><body>" + "<p>content</p>" * 20 + "</body></html>"


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def relay(name: str) -> RelayDescriptor:
    return RelayDescriptor(name=name, build_url=lambda target, host=name.lower(): f"https://{host}.relay.test/?u={target}")


def make_chain(handler, relays=None, retries=2, sleep=None, cache=None) -> RelayChain:
    return RelayChain(
        relays or [relay("First"), relay("Second")],
        settings=RelaySettings(max_retries_per_relay=retries, base_delay_seconds=1.0, jitter_seconds=0.0),
        cache=cache if cache is not None else TTLCache(600),
        transport=httpx.MockTransport(handler),
        sleep=sleep or RecordingSleep(),
        rng=random.Random(7),
    )


class TestRelayChain:
    @pytest.mark.asyncio
    async def test_returns_first_relay_body(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            return httpx.Response(200, text=LONG_HTML)

        body = await make_chain(handler).fetch_through_relays(TARGET)

        assert body == LONG_HTML
        assert calls == ["first.relay.test"]

    @pytest.mark.asyncio
    async def test_short_body_falls_through_to_next_relay(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            if request.url.host == "first.relay.test":
                return httpx.Response(200, text="<html>blocked</html>")
            return httpx.Response(200, text=LONG_HTML)

        body = await make_chain(handler).fetch_through_relays(TARGET)

        assert body == LONG_HTML
        assert "blocked" not in body
        assert calls == ["first.relay.test", "first.relay.test", "second.relay.test"]

    @pytest.mark.asyncio
    async def test_exhaustion_reports_last_relay_and_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="unavailable")

        with pytest.raises(AllRelaysExhausted) as excinfo:
            await make_chain(handler).fetch_through_relays(TARGET)

        assert "Second" in str(excinfo.value)
        assert "HTTP 503" in str(excinfo.value)
        assert excinfo.value.attempts == 4

    @pytest.mark.asyncio
    async def test_transport_errors_are_absorbed_per_attempt(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "first.relay.test":
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, text=LONG_HTML)

        assert await make_chain(handler).fetch_through_relays(TARGET) == LONG_HTML

    @pytest.mark.asyncio
    async def test_backoff_doubles_between_retries_of_one_relay(self):
        sleep = RecordingSleep()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        with pytest.raises(AllRelaysExhausted):
            await make_chain(handler, relays=[relay("Only")], retries=3, sleep=sleep).fetch_through_relays(TARGET)

        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_successful_fetch_is_cached(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url)
            return httpx.Response(200, text=LONG_HTML)

        chain = make_chain(handler)
        await chain.fetch_through_relays(TARGET)
        await chain.fetch_through_relays(TARGET)

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_requests_carry_browser_user_agent(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["User-Agent"])
            return httpx.Response(200, text=LONG_HTML)

        await make_chain(handler).fetch_through_relays(TARGET)

        assert seen[0].startswith("Mozilla/5.0")

    @pytest.mark.asyncio
    async def test_default_chain_unwraps_json_contents(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.host == "api.allorigins.win"
            return httpx.Response(200, json={"contents": LONG_HTML, "status": {"http_code": 200}})

        chain = make_chain(handler, relays=DEFAULT_RELAYS)

        assert await chain.fetch_through_relays(TARGET) == LONG_HTML


class TestRelayDescriptors:
    def test_default_relay_order(self):
        assert [r.name for r in DEFAULT_RELAYS] == [
            "AllOrigins",
            "CORS.SH",
            "CodeTabs",
            "CorsProxy.io",
            "Proxy.CORS.SH",
            "Crossorigin.me",
            "ThingProxy",
        ]

    def test_allorigins_encodes_target(self):
        url = DEFAULT_RELAYS[0].build_url("https://a.test/x?y=1")

        assert url == "https://api.allorigins.win/get?url=https%3A%2F%2Fa.test%2Fx%3Fy%3D1"

    def test_json_contents_body_rejects_unexpected_payloads(self):
        assert json_contents_body("not json") == ""
        assert json_contents_body(json.dumps({"other": 1})) == ""
        assert json_contents_body(json.dumps({"contents": "<html/>"})) == "<html/>"
