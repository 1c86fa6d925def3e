"""Input normalization shared by the store's write and read paths."""

from __future__ import annotations

import re

from changelog_store.domain import UNSET, TenantScope, Unset
from changelog_store.errors import ValidationError
from changelog_store.models.post import (
    BODY_MAX_LENGTH,
    SLUG_PATTERN,
    TITLE_MAX_LENGTH,
    PostCategory,
    PostStatus,
)

_SLUG_RE = re.compile(SLUG_PATTERN)
_WHITESPACE_RE = re.compile(r"\s+")
_CODE_BLOCK_RE = re.compile(r"```.*?```", re.DOTALL)
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_MARKDOWN_PUNCT_RE = re.compile(r"[*_#>`~\-]")


def _require_str(value: object, field: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)
    return value


def normalize_title(value: object) -> str:
    """Collapse whitespace and enforce the length cap. Empty titles are allowed for drafts."""
    title = _WHITESPACE_RE.sub(" ", _require_str(value, "title")).strip()
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(
            f"title must be at most {TITLE_MAX_LENGTH} characters", field="title"
        )
    return title


def normalize_body(value: object) -> str:
    """Trim the markdown body and enforce the length cap."""
    body = _require_str(value, "body_markdown").strip()
    if len(body) > BODY_MAX_LENGTH:
        raise ValidationError(
            f"body_markdown must be at most {BODY_MAX_LENGTH} characters",
            field="body_markdown",
        )
    return body


def require_publishable(title: str, body_markdown: str) -> None:
    """Published posts need both a title and a body."""
    if not title.strip():
        raise ValidationError("title is required to publish", field="title")
    if not body_markdown.strip():
        raise ValidationError("body_markdown is required to publish", field="body_markdown")


def parse_category(value: object) -> PostCategory:
    try:
        return PostCategory(value)
    except ValueError:
        allowed = ", ".join(member.value for member in PostCategory)
        raise ValidationError(f"category must be one of: {allowed}", field="category") from None


def parse_status(value: object) -> PostStatus:
    try:
        return PostStatus(value)
    except ValueError:
        allowed = ", ".join(member.value for member in PostStatus)
        raise ValidationError(f"status must be one of: {allowed}", field="status") from None


def normalize_slug(value: object) -> str:
    slug = _require_str(value, "slug").strip().lower()
    if not _SLUG_RE.fullmatch(slug):
        raise ValidationError(
            "slug must be lowercase letters, numbers, and hyphens only", field="slug"
        )
    return slug


def normalize_actor_id(value: object) -> str:
    actor_id = value.strip() if isinstance(value, str) else ""
    if not actor_id:
        raise ValidationError("actor_id is required", field="actor_id")
    return actor_id


def normalize_user_id(value: object) -> str:
    user_id = value.strip() if isinstance(value, str) else ""
    if not user_id:
        raise ValidationError("user_id is required", field="user_id")
    return user_id


def normalize_expected_revision(value: object) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(
            "expected_revision must be a non-negative integer", field="expected_revision"
        )
    return value


def resolve_tenant_assignment(
    requested: str | None | Unset, scope: TenantScope
) -> str | None | Unset:
    """Validate a requested post owner against the caller's scope.

    ``UNSET`` passes through so the caller can pick its own default; ``None``
    means a global post; a string must name the caller's own tenant.
    """
    if requested is UNSET or requested is None:
        return requested
    tenant_id = _require_str(requested, "tenant_id").strip()
    if not tenant_id:
        raise ValidationError("tenant_id cannot be empty", field="tenant_id")
    if tenant_id != scope.tenant_id:
        raise ValidationError(
            "tenant_id must match the request tenant context or be null", field="tenant_id"
        )
    return tenant_id


def normalize_search(value: object, max_length: int) -> str | None:
    if value is None:
        return None
    query = _require_str(value, "query").strip()
    if not query:
        return None
    if len(query) > max_length:
        raise ValidationError(f"query must be {max_length} characters or less", field="query")
    return query


def create_excerpt(markdown: str, max_length: int = 220) -> str:
    """Return a plain-text teaser of ``markdown`` for feed listings."""
    text = _CODE_BLOCK_RE.sub(" ", markdown)
    text = _LINK_RE.sub(r"\1", text)
    text = _MARKDOWN_PUNCT_RE.sub(" ", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    if len(text) <= max_length:
        return text
    return f"{text[: max_length - 1].strip()}…"
