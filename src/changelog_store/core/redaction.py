"""Privacy rules for audit metadata.

Audit rows must never carry free-text post content. These helpers are shared by
the audit service (which strips content before writing) and the audit model
(which refuses anything that slipped through).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

FORBIDDEN_KEYS = frozenset({"body", "body_markdown", "bodymarkdown", "markdown", "content"})

JSONValue = str | int | float | bool | None | dict[str, Any] | list[Any]

_MISSING = object()


def is_forbidden_key(key: object) -> bool:
    """Return True when ``key`` names a content-bearing field (case-insensitive)."""
    return isinstance(key, str) and key.lower() in FORBIDDEN_KEYS


def contains_forbidden_key(value: object) -> bool:
    """Return True if any mapping nested anywhere in ``value`` has a forbidden key."""
    if isinstance(value, Mapping):
        for key, entry in value.items():
            if is_forbidden_key(key) or contains_forbidden_key(entry):
                return True
        return False
    if isinstance(value, list | tuple):
        return any(contains_forbidden_key(entry) for entry in value)
    return False


def _sanitize_value(value: object) -> object:
    if value is None or isinstance(value, str | bool | int | float):
        return value

    if isinstance(value, list | tuple):
        items = [_sanitize_value(entry) for entry in value]
        kept = [entry for entry in items if entry is not _MISSING]
        # A list emptied by stripping collapses; one that was empty to begin with is kept.
        if value and not kept:
            return _MISSING
        return kept

    if isinstance(value, Mapping):
        result: dict[str, Any] = {}
        for key, entry in value.items():
            if not isinstance(key, str) or is_forbidden_key(key):
                continue
            cleaned = _sanitize_value(entry)
            if cleaned is not _MISSING:
                result[key] = cleaned
        if not result:
            return _MISSING
        return result

    # Anything that is not plain JSON is dropped rather than stringified.
    return _MISSING


def sanitize_metadata(metadata: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Strip content-bearing keys from ``metadata`` at every nesting depth.

    Returns ``None`` when nothing survives.
    """
    if not metadata:
        return None
    cleaned = _sanitize_value(metadata)
    if cleaned is _MISSING or not isinstance(cleaned, dict):
        return None
    return cleaned
