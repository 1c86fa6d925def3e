# src/changelog_store/models/post.py
"""SQLAlchemy model for changelog posts and their enumerations."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from changelog_store.db.session import Base
from changelog_store.db.time import UTCDateTime

TITLE_MAX_LENGTH = 180
BODY_MAX_LENGTH = 50_000
SLUG_PATTERN = r"^[a-z0-9]+(-[a-z0-9]+)*$"


class PostVisibility(StrEnum):
    """Audience a post is written for; only ``authenticated`` is served today."""

    AUTHENTICATED = "authenticated"
    PUBLIC = "public"


class PostStatus(StrEnum):
    """Lifecycle state of a post."""

    DRAFT = "draft"
    PUBLISHED = "published"


class PostCategory(StrEnum):
    """Reader-facing label for the kind of change a post announces."""

    NEW = "new"
    IMPROVEMENT = "improvement"
    FIX = "fix"


def _enum_column(enum_cls: type[StrEnum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=32,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class Post(Base):
    """A changelog entry owned by one tenant, or by nobody (global)."""

    __tablename__ = "changelog_posts"
    __table_args__ = (
        CheckConstraint(
            "(status = 'draft' AND published_at IS NULL) OR "
            "(status = 'published' AND published_at IS NOT NULL)",
            name="changelog_posts_published_at_consistency",
        ),
        CheckConstraint(
            "status <> 'published' OR "
            "(length(trim(title)) > 0 AND length(trim(body_markdown)) > 0)",
            name="changelog_posts_required_content_when_published",
        ),
        CheckConstraint("revision >= 1", name="changelog_posts_revision_positive"),
        Index(
            "idx_changelog_posts_tenant_status_visibility_published_at_id",
            "tenant_id",
            "status",
            "visibility",
            "published_at",
            "id",
        ),
        Index(
            "idx_changelog_posts_status_visibility_published_at_id",
            "status",
            "visibility",
            "published_at",
            "id",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    # NULL means the post is global and visible to every tenant.
    tenant_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    visibility: Mapped[PostVisibility] = mapped_column(
        _enum_column(PostVisibility, "changelog_visibility"),
        nullable=False,
        default=PostVisibility.AUTHENTICATED,
    )
    status: Mapped[PostStatus] = mapped_column(
        _enum_column(PostStatus, "changelog_post_status"),
        nullable=False,
        default=PostStatus.DRAFT,
    )
    category: Mapped[PostCategory] = mapped_column(
        _enum_column(PostCategory, "changelog_post_category"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False, default="")
    slug: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        unique=True,
    )
    body_markdown: Mapped[str] = mapped_column(Text, nullable=False, default="")

    published_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    created_by_actor_id: Mapped[str] = mapped_column(Text, nullable=False)
    updated_by_actor_id: Mapped[str] = mapped_column(Text, nullable=False)

    # Optimistic concurrency stamp; bumped by exactly one per committed mutation.
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    @property
    def is_global(self) -> bool:
        """Return True when the post has no tenant owner."""
        return self.tenant_id is None

    def visible_to(self, tenant_id: str) -> bool:
        """Return True if a caller scoped to ``tenant_id`` may see this post."""
        return self.tenant_id is None or self.tenant_id == tenant_id

    def __repr__(self) -> str:
        return (
            f"Post(id={self.id!r}, tenant_id={self.tenant_id!r}, slug={self.slug!r}, "
            f"status={self.status!s}, revision={self.revision})"
        )
