"""Request and response adapters for the supported chat-completion providers.

OpenAI and Groq share the chat-completions envelope; Gemini uses its own
generate-content contract. Both directions are plain functions keyed by
``Provider`` so the generator never branches on provider details.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from carousel_studio.config import AppSettings
from carousel_studio.domain.dto import Provider
from carousel_studio.domain.errors import MissingCredentials, SchemaValidationError
from carousel_studio.utils import has_credential


@dataclass(frozen=True)
class ProviderRequest:
    url: str
    json: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)


def _chat_completion_request(endpoint: str, api_key: str, model: str, prompt: str) -> ProviderRequest:
    return ProviderRequest(
        url=endpoint,
        json={
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": {"type": "json_object"},
        },
        headers={"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"},
    )


def build_provider_request(provider: Provider, prompt: str, settings: AppSettings) -> ProviderRequest:
    """Return the HTTP request that asks ``provider`` to complete ``prompt`` as JSON."""
    provider = Provider(provider)
    if provider is Provider.OPENAI:
        section = settings.openai
    elif provider is Provider.GROQ:
        section = settings.groq
    else:
        section = settings.gemini

    if not has_credential(section.api_key):
        raise MissingCredentials(provider.value)

    if provider is Provider.GEMINI:
        return ProviderRequest(
            url=f"{section.endpoint.rstrip('/')}/{section.model}:generateContent",
            json={
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"response_mime_type": "application/json"},
            },
            headers={"Content-Type": "application/json", "x-goog-api-key": section.api_key},
        )
    return _chat_completion_request(section.endpoint, section.api_key, section.model, prompt)


def unwrap_provider_response(provider: Provider, payload: Mapping[str, Any]) -> str:
    """Extract the completion text from a provider response envelope."""
    provider = Provider(provider)
    try:
        if provider is Provider.GEMINI:
            text = payload["candidates"][0]["content"]["parts"][0]["text"]
        else:
            text = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise SchemaValidationError(f"unexpected {provider.value} response envelope") from exc

    if not isinstance(text, str) or not text.strip():
        raise SchemaValidationError(f"{provider.value} returned an empty completion")
    return text


__all__ = ["ProviderRequest", "build_provider_request", "unwrap_provider_response"]
