"""Helper utilities for detecting unset or placeholder credential values."""

from __future__ import annotations

PLACEHOLDER_TOKENS = (
    "replace-with",
    "your-",
    "example",
    "stub",
    "dummy",
    "changeme",
)


def is_placeholder_value(value: str | None) -> bool:
    if not value:
        return True
    normalized = value.strip().lower()
    if not normalized:
        return True
    return any(token in normalized for token in PLACEHOLDER_TOKENS)


def has_credential(value: str | None) -> bool:
    """Return True when ``value`` looks like a real, usable credential."""

    return not is_placeholder_value(value)
