"""In-memory key/value cache with per-entry expiry."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

from carousel_studio.config import CacheSettings
from carousel_studio.domain.dto import ImageDimensions

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    value: V
    stored_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


class TTLCache(Generic[V]):
    """Session-scoped cache; entries expire lazily when read.

    No background sweep runs. When ``max_entries`` is set, the oldest
    inserted entries are evicted first once the cap is exceeded.
    """

    def __init__(
        self,
        default_ttl: float = 300.0,
        *,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: Dict[str, CacheEntry[V]] = {}
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._clock = clock

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def set(self, key: str, value: V, ttl: Optional[float] = None) -> None:
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl=self._default_ttl if ttl is None else ttl,
        )
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                del self._entries[next(iter(self._entries))]

    def get(self, key: str) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def build_html_cache(settings: CacheSettings) -> TTLCache[str]:
    return TTLCache(settings.html_ttl_seconds, max_entries=settings.max_entries)


def build_reachability_cache(settings: CacheSettings) -> TTLCache[bool]:
    return TTLCache(settings.reachability_ttl_seconds, max_entries=settings.max_entries)


def build_dimensions_cache(settings: CacheSettings) -> TTLCache[ImageDimensions]:
    return TTLCache(settings.dimensions_ttl_seconds, max_entries=settings.max_entries)


__all__ = [
    "CacheEntry",
    "TTLCache",
    "build_dimensions_cache",
    "build_html_cache",
    "build_reachability_cache",
]
