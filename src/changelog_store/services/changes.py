"""Typed field diffs recorded in audit metadata.

Only field names ever leave this module; values stay with the row.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from changelog_store.models import Post


class ChangedField(StrEnum):
    TITLE = "title"
    SLUG = "slug"
    CATEGORY = "category"
    BODY_MARKDOWN = "body_markdown"
    TENANT_ID = "tenant_id"
    STATUS = "status"
    VISIBILITY = "visibility"


# Order used for audit metadata so entries are stable across calls.
FIELD_ORDER: tuple[ChangedField, ...] = tuple(ChangedField)


def diff_post(post: Post, proposed: Mapping[ChangedField, Any]) -> dict[ChangedField, Any]:
    """Return the subset of ``proposed`` whose values differ from ``post``."""
    changes: dict[ChangedField, Any] = {}
    for field in FIELD_ORDER:
        if field not in proposed:
            continue
        value = proposed[field]
        if getattr(post, field.value) != value:
            changes[field] = value
    return changes


def populated_fields(post: Post) -> list[ChangedField]:
    """Fields set on a freshly created post, for the ``create`` audit row."""
    fields: list[ChangedField] = []
    for field in FIELD_ORDER:
        value = getattr(post, field.value)
        if value is None or value == "":
            continue
        fields.append(field)
    return fields


def field_names(fields: Mapping[ChangedField, Any] | list[ChangedField]) -> list[str]:
    return [field.value for field in fields]
