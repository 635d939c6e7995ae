"""Fetch third-party pages through an ordered chain of public relays.

Any single relay may be down, rate-limited or blocked for a given target, so
each relay is tried a few times with exponential backoff before moving on to
the next one. Relays are plain data: a URL builder, a body unwrapper and the
headers to send.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Mapping, Optional, Sequence
from urllib.parse import quote

import httpx

from carousel_studio.config import CacheSettings, RelaySettings
from carousel_studio.domain.errors import AllRelaysExhausted
from carousel_studio.services.cache import TTLCache, build_html_cache

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:124.0) Gecko/20100101 Firefox/124.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:124.0) Gecko/20100101 Firefox/124.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36 Edg/122.0.0.0",
)

_HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
_COMMON_HEADERS = {
    "Referer": "https://google.com",
    "Accept-Language": "pt-BR,pt;q=0.9,en;q=0.8",
}


def passthrough_body(raw: str) -> str:
    return raw


def json_contents_body(raw: str) -> str:
    """Unwrap relays that return ``{"contents": "<html>..."}``."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return ""
    if isinstance(data, dict) and isinstance(data.get("contents"), str):
        return data["contents"]
    return ""


@dataclass(frozen=True)
class RelayDescriptor:
    name: str
    build_url: Callable[[str], str]
    unwrap_body: Callable[[str], str] = passthrough_body
    request_headers: Mapping[str, str] = field(default_factory=dict)


def _encoded(target_url: str) -> str:
    return quote(target_url, safe="")


DEFAULT_RELAYS: Sequence[RelayDescriptor] = (
    RelayDescriptor(
        name="AllOrigins",
        build_url=lambda target: f"https://api.allorigins.win/get?url={_encoded(target)}",
        unwrap_body=json_contents_body,
        request_headers={"Accept": "application/json", **_COMMON_HEADERS},
    ),
    RelayDescriptor(
        name="CORS.SH",
        build_url=lambda target: f"https://cors.sh/{target}",
        request_headers={
            "Accept": _HTML_ACCEPT,
            "DNT": "1",
            "Upgrade-Insecure-Requests": "1",
            **_COMMON_HEADERS,
        },
    ),
    RelayDescriptor(
        name="CodeTabs",
        build_url=lambda target: f"https://api.codetabs.com/v1/proxy?quest={_encoded(target)}",
        request_headers={"Accept": _HTML_ACCEPT, **_COMMON_HEADERS},
    ),
    RelayDescriptor(
        name="CorsProxy.io",
        build_url=lambda target: f"https://corsproxy.io/?{_encoded(target)}",
        request_headers={"Accept": _HTML_ACCEPT, "DNT": "1", **_COMMON_HEADERS},
    ),
    RelayDescriptor(
        name="Proxy.CORS.SH",
        build_url=lambda target: f"https://proxy.cors.sh/{target}",
        request_headers={"Accept": _HTML_ACCEPT, **_COMMON_HEADERS},
    ),
    RelayDescriptor(
        name="Crossorigin.me",
        build_url=lambda target: f"https://crossorigin.me/{target}",
        request_headers={"Accept": _HTML_ACCEPT, **_COMMON_HEADERS},
    ),
    RelayDescriptor(
        name="ThingProxy",
        build_url=lambda target: f"https://thingproxy.freeboard.io/fetch/{_encoded(target)}",
        request_headers={"Accept": _HTML_ACCEPT, **_COMMON_HEADERS},
    ),
)


class RelayAttemptError(Exception):
    """A single relay attempt produced no usable body."""


class RelayChain:
    """Retrieve page bodies through the configured relays, in order."""

    def __init__(
        self,
        relays: Optional[Sequence[RelayDescriptor]] = None,
        *,
        settings: Optional[RelaySettings] = None,
        cache: Optional[TTLCache[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._relays: List[RelayDescriptor] = list(relays if relays is not None else DEFAULT_RELAYS)
        self._settings = settings or RelaySettings()
        self._cache = cache if cache is not None else build_html_cache(CacheSettings())
        self._transport = transport
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def relays(self) -> List[RelayDescriptor]:
        return list(self._relays)

    async def fetch_through_relays(self, target_url: str, max_retries_per_relay: Optional[int] = None) -> str:
        """Return the body of ``target_url`` from the first relay that serves it.

        Raises AllRelaysExhausted with the last observed error when every
        relay/retry combination fails.
        """
        cached = self._cache.get(target_url)
        if cached is not None:
            self._logger.info("🎯 Cache hit for page: %s", target_url)
            return cached

        retries = max_retries_per_relay or self._settings.max_retries_per_relay
        last_error: Optional[str] = None
        attempts = 0

        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            for relay in self._relays:
                for attempt in range(retries):
                    attempts += 1
                    try:
                        self._logger.info(
                            "🔄 Trying %s (attempt %d/%d) for %s", relay.name, attempt + 1, retries, target_url
                        )
                        body = await self._attempt(client, relay, target_url)
                    except (httpx.HTTPError, RelayAttemptError) as exc:
                        last_error = f"{relay.name}: {str(exc) or type(exc).__name__}"
                        self._logger.warning(
                            "❌ %s failed (attempt %d/%d): %s", relay.name, attempt + 1, retries, exc
                        )
                        if attempt < retries - 1:
                            delay = self._backoff_delay(attempt)
                            self._logger.debug("⏳ Waiting %.2fs before retrying %s", delay, relay.name)
                            await self._sleep(delay)
                        continue

                    self._logger.info("✅ Fetched %s through %s (%d chars)", target_url, relay.name, len(body))
                    self._cache.set(target_url, body)
                    return body

        self._logger.error("All relays failed for %s. Last error: %s", target_url, last_error)
        raise AllRelaysExhausted(last_error, attempts)

    async def _attempt(self, client: httpx.AsyncClient, relay: RelayDescriptor, target_url: str) -> str:
        response = await client.get(relay.build_url(target_url), headers=self._request_headers(relay))
        if response.status_code >= 400:
            raise RelayAttemptError(f"HTTP {response.status_code}: {response.reason_phrase}")
        if not response.text:
            raise RelayAttemptError("empty response")

        body = relay.unwrap_body(response.text)
        if not body or len(body) <= self._settings.min_body_length:
            raise RelayAttemptError(f"body too short ({len(body or '')} chars)")
        return body

    def _request_headers(self, relay: RelayDescriptor) -> dict[str, str]:
        headers = dict(relay.request_headers)
        headers["User-Agent"] = self._rng.choice(USER_AGENTS)
        return headers

    def _backoff_delay(self, attempt: int) -> float:
        base = self._settings.base_delay_seconds * (2 ** attempt)
        return base + self._rng.uniform(0, self._settings.jitter_seconds)


__all__ = [
    "DEFAULT_RELAYS",
    "RelayAttemptError",
    "RelayChain",
    "RelayDescriptor",
    "USER_AGENTS",
    "json_contents_body",
    "passthrough_body",
]
