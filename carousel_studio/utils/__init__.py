"""Shared helpers."""

from .placeholders import has_credential, is_placeholder_value
from .urls import alt_from_url, ensure_http_url, has_image_extension, to_absolute_url

__all__ = [
    "alt_from_url",
    "ensure_http_url",
    "has_credential",
    "has_image_extension",
    "is_placeholder_value",
    "to_absolute_url",
]
