"""Typed failures surfaced by the acquisition and generation services."""

from __future__ import annotations

from typing import Optional


class CarouselStudioError(Exception):
    """Base class for every failure the core reports to its callers."""


class InvalidUrl(CarouselStudioError):
    def __init__(self, url: str, reason: str = "URL is not a valid http(s) address") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL {url!r}: {reason}")


class AllRelaysExhausted(CarouselStudioError):
    """Every relay and every retry failed while fetching a page."""

    def __init__(self, last_error: Optional[str], attempts: int = 0) -> None:
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(
            f"All relays failed after {attempts} attempts. Last error: {last_error or 'unknown'}"
        )


class ImageUnreachable(CarouselStudioError):
    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Image is not reachable: {url}")


class UnsupportedFileType(CarouselStudioError):
    def __init__(self, content_type: Optional[str], detail: Optional[str] = None) -> None:
        self.content_type = content_type
        message = f"Unsupported file type: {content_type or 'unknown'}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class FileTooLarge(CarouselStudioError):
    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(
            f"File too large: {size / 1024 / 1024:.2f}MB. Maximum allowed: {limit / 1024 / 1024:.2f}MB"
        )


class MissingCredentials(CarouselStudioError):
    """The credential for a provider or capability is not configured."""

    def __init__(self, capability: str) -> None:
        self.capability = capability
        super().__init__(f"API key for {capability} is not configured")


class ProviderHttpError(CarouselStudioError):
    """An AI provider answered with a non-2xx status or could not be reached.

    ``status`` is ``None`` when the request failed at the transport level.
    """

    def __init__(self, status: Optional[int], body: str, provider: Optional[str] = None) -> None:
        self.status = status
        self.body = body
        self.provider = provider
        label = provider or "provider"
        code = status if status is not None else "network error"
        super().__init__(f"AI API error ({label}): {code} - {body[:500]}")


class SchemaValidationError(CarouselStudioError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"AI response does not match the expected format: {detail}")


class NoQualityImagesFound(CarouselStudioError):
    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"No quality images found on page: {url}")


__all__ = [
    "AllRelaysExhausted",
    "CarouselStudioError",
    "FileTooLarge",
    "ImageUnreachable",
    "InvalidUrl",
    "MissingCredentials",
    "NoQualityImagesFound",
    "ProviderHttpError",
    "SchemaValidationError",
    "UnsupportedFileType",
]
