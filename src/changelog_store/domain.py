"""Value objects passed into and returned from the content store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, StrEnum
from typing import Any, Final, Generic, Literal, TypeVar

from changelog_store.errors import ValidationError
from changelog_store.models import (
    AuditAction,
    AuditLogEntry,
    Post,
    PostCategory,
    PostStatus,
    PostVisibility,
)

T = TypeVar("T")


class _Unset(Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


# Marks an optional argument the caller did not supply, as opposed to an explicit None.
UNSET: Final = _Unset.UNSET
Unset = Literal[_Unset.UNSET]


class TenantFilter(StrEnum):
    """Restricts the publisher list to a subset of the posts visible in scope."""

    ALL = "all"
    TENANT = "tenant"
    GLOBAL = "global"


@dataclass(frozen=True)
class TenantScope:
    """The caller's tenant, supplied by the auth middleware for every call."""

    tenant_id: str

    def __post_init__(self) -> None:
        if not isinstance(self.tenant_id, str) or not self.tenant_id.strip():
            raise ValidationError("tenant scope is required", field="tenant_id")


@dataclass(frozen=True)
class Cursor:
    """Position of the last item on a feed page."""

    published_at: datetime
    post_id: str

    @classmethod
    def from_post(cls, post: Post) -> Cursor:
        if post.published_at is None:
            raise ValueError("cannot build a feed cursor from an unpublished post")
        return cls(published_at=post.published_at, post_id=post.id)


@dataclass(frozen=True)
class Pagination:
    """Offset pagination for the publisher list."""

    limit: int
    offset: int = 0


@dataclass(frozen=True)
class FeedPage(Generic[T]):
    """One page of the reader feed plus the cursor for the next one."""

    items: list[T]
    limit: int
    next_cursor: str | None = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


@dataclass(frozen=True)
class AdminQuery:
    """Filters for the publisher list, already validated by the store."""

    tenant_id: str
    limit: int
    offset: int = 0
    status: PostStatus | None = None
    tenant_filter: TenantFilter = TenantFilter.ALL
    search: str | None = None


@dataclass(frozen=True)
class AdminPostSummary:
    id: str
    tenant_id: str | None
    visibility: PostVisibility
    status: PostStatus
    category: PostCategory
    title: str
    slug: str
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime
    revision: int

    @classmethod
    def from_post(cls, post: Post) -> AdminPostSummary:
        return cls(
            id=post.id,
            tenant_id=post.tenant_id,
            visibility=PostVisibility(post.visibility),
            status=PostStatus(post.status),
            category=PostCategory(post.category),
            title=post.title,
            slug=post.slug,
            published_at=post.published_at,
            created_at=post.created_at,
            updated_at=post.updated_at,
            revision=post.revision,
        )


@dataclass(frozen=True)
class AdminPostDetail:
    """Everything the editor needs to load a post, body included."""

    summary: AdminPostSummary
    body_markdown: str

    @classmethod
    def from_post(cls, post: Post) -> AdminPostDetail:
        return cls(summary=AdminPostSummary.from_post(post), body_markdown=post.body_markdown)


@dataclass(frozen=True)
class PublicPostSummary:
    id: str
    title: str
    slug: str
    category: PostCategory
    published_at: datetime
    excerpt: str


@dataclass(frozen=True)
class PublicPostDetail:
    id: str
    tenant_id: str | None
    title: str
    slug: str
    category: PostCategory
    published_at: datetime
    body_markdown: str


@dataclass(frozen=True)
class AuditRecord:
    """Read-side view of an audit row."""

    tenant_id: str | None
    actor_id: str
    action: AuditAction
    post_id: str | None
    at: datetime
    metadata: dict[str, Any] | None = field(default=None)

    @classmethod
    def from_entry(cls, entry: AuditLogEntry) -> AuditRecord:
        return cls(
            tenant_id=entry.tenant_id,
            actor_id=entry.actor_id,
            action=AuditAction(entry.action),
            post_id=entry.post_id,
            at=entry.at,
            metadata=entry.metadata_,
        )
