"""Configuration loader for service credentials and pipeline tuning."""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

from pydantic import BaseModel, Field

from carousel_studio.utils import has_credential


BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = BASE_DIR.parent / "config" / "settings.toml"

DEFAULT_FALLBACK_IMAGE = (
    "https://images.pexels.com/photos/3184418/pexels-photo-3184418.jpeg"
    "?auto=compress&cs=tinysrgb&w=1260&h=750&dpr=2"
)


class OpenAISettings(BaseModel):
    api_key: str = ""
    model: str = "gpt-4-turbo"
    endpoint: str = "https://api.openai.com/v1/chat/completions"


class GroqSettings(BaseModel):
    api_key: str = ""
    model: str = "llama-3.1-8b-instant"
    endpoint: str = "https://api.groq.com/openai/v1/chat/completions"


class GeminiSettings(BaseModel):
    api_key: str = ""
    model: str = "gemini-1.5-flash-latest"
    endpoint: str = "https://generativelanguage.googleapis.com/v1beta/models"


class UnsplashSettings(BaseModel):
    access_key: str = ""
    endpoint: str = "https://api.unsplash.com/search/photos"
    per_page: int = 30
    timeout_seconds: float = 15.0


class RelaySettings(BaseModel):
    max_retries_per_relay: int = 3
    base_delay_seconds: float = 1.0
    jitter_seconds: float = 1.0
    timeout_seconds: float = 15.0
    min_body_length: int = 100


class ExtractionSettings(BaseModel):
    min_width: int = 300
    min_height: int = 200
    max_results: int = 15
    dimension_timeout_seconds: float = 5.0
    probe_timeout_seconds: float = 10.0
    strict_quality_filter: bool = False


class UploadSettings(BaseModel):
    max_bytes: int = 10 * 1024 * 1024
    allowed_types: List[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"]
    )


class CacheSettings(BaseModel):
    html_ttl_seconds: float = 600.0
    reachability_ttl_seconds: float = 1800.0
    dimensions_ttl_seconds: float = 3600.0
    max_entries: Optional[int] = None


class GenerationSettings(BaseModel):
    fallback_image_url: str = DEFAULT_FALLBACK_IMAGE
    request_timeout_seconds: float = 60.0


class AppSettings(BaseModel):
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    groq: GroqSettings = Field(default_factory=GroqSettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    unsplash: UnsplashSettings = Field(default_factory=UnsplashSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)

    def capabilities(self) -> Dict[str, bool]:
        """Report which credential-gated capabilities are usable."""
        return {
            "openai": has_credential(self.openai.api_key),
            "groq": has_credential(self.groq.api_key),
            "gemini": has_credential(self.gemini.api_key),
            "stock_search": has_credential(self.unsplash.access_key),
        }


SECTION_MAPPING: Dict[str, Dict[str, str]] = {
    "openai": {
        "OPENAI_API_KEY": "api_key",
        "OPENAI_MODEL": "model",
        "OPENAI_ENDPOINT": "endpoint",
    },
    "groq": {
        "GROQ_API_KEY": "api_key",
        "GROQ_MODEL": "model",
        "GROQ_ENDPOINT": "endpoint",
    },
    "gemini": {
        "GEMINI_API_KEY": "api_key",
        "GEMINI_MODEL": "model",
        "GEMINI_ENDPOINT": "endpoint",
    },
    "unsplash": {
        "UNSPLASH_ACCESS_KEY": "access_key",
        "UNSPLASH_ENDPOINT": "endpoint",
    },
    "relay": {
        "RELAY_MAX_RETRIES": "max_retries_per_relay",
        "RELAY_BASE_DELAY": "base_delay_seconds",
        "RELAY_TIMEOUT": "timeout_seconds",
    },
    "extraction": {
        "EXTRACTION_MIN_WIDTH": "min_width",
        "EXTRACTION_MIN_HEIGHT": "min_height",
        "EXTRACTION_MAX_RESULTS": "max_results",
        "EXTRACTION_STRICT_FILTER": "strict_quality_filter",
    },
    "upload": {
        "UPLOAD_MAX_BYTES": "max_bytes",
    },
    "cache": {
        "CACHE_MAX_ENTRIES": "max_entries",
    },
    "generation": {
        "FALLBACK_IMAGE_URL": "fallback_image_url",
    },
}


def _load_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as fp:
        return tomllib.load(fp)


def _get_env_with_fallback(env_name: str) -> str | None:
    """Read ``env_name`` as UPPER_SNAKE first, then as lower-kebab.

    Empty strings are treated as unset so they never mask file values.
    """
    value = os.getenv(env_name)
    if value is not None and value != "":
        return value
    value = os.getenv(env_name.lower().replace("_", "-"))
    if value is not None and value != "":
        return value
    return None


def _env_override() -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for section, mapping in SECTION_MAPPING.items():
        values = {}
        for env_name, field_name in mapping.items():
            value = _get_env_with_fallback(env_name)
            if value is not None:
                values[field_name] = value
        if values:
            result[section] = values
    return result


def _deep_merge(base: MutableMapping[str, Any], overrides: Mapping[str, Any]) -> MutableMapping[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, Mapping):
            node = base.setdefault(key, {})
            if isinstance(node, MutableMapping):
                _deep_merge(node, value)
            else:
                base[key] = value
        else:
            base[key] = value
    return base


def _normalize_config(data: Dict[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for section, values in data.items():
        mapping = SECTION_MAPPING.get(section, {})
        normalized_section: Dict[str, Any] = {}
        if isinstance(values, Mapping):
            for key, value in values.items():
                normalized_section[mapping.get(key, key.lower())] = value
        normalized[section] = normalized_section
    return normalized


def load_settings(config_path: Optional[Path] = None) -> AppSettings:
    """Load settings from a TOML file, overridden by environment variables."""

    path = config_path or DEFAULT_CONFIG_PATH
    data: Dict[str, Any] = _normalize_config(_load_toml(path))
    merged = _deep_merge(data, _env_override())
    return AppSettings(**merged)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Cached accessor using the default configuration path."""

    return load_settings()


__all__ = [
    "AppSettings",
    "CacheSettings",
    "ExtractionSettings",
    "GeminiSettings",
    "GenerationSettings",
    "GroqSettings",
    "OpenAISettings",
    "RelaySettings",
    "UnsplashSettings",
    "UploadSettings",
    "get_settings",
    "load_settings",
]
