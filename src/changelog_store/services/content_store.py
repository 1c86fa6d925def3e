"""Tenant-scoped changelog content store.

Visibility rule: a post with ``tenant_id = None`` is global and visible to
every tenant; any other post is visible only to its own tenant. A caller who
fails the rule gets exactly what they would get for a post that does not
exist (``None``), so cross-tenant posts are never observable.

Every mutation runs in one repository transaction together with its audit
row. Update, publish and unpublish lock the target row first and honour an
optional ``expected_revision`` for optimistic concurrency.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from changelog_store.core.settings import Settings, settings as default_settings
from changelog_store.db.time import utcnow
from changelog_store.domain import (
    UNSET,
    AdminPostDetail,
    AdminPostSummary,
    AdminQuery,
    AuditRecord,
    Cursor,
    FeedPage,
    Pagination,
    PublicPostDetail,
    PublicPostSummary,
    TenantFilter,
    TenantScope,
    Unset,
)
from changelog_store.errors import ConflictError, ValidationError
from changelog_store.models import AuditAction, Post, PostStatus, PostVisibility
from changelog_store.repositories.base import PostRepository, PostTransaction
from changelog_store.services.audit import AuditTrail
from changelog_store.services.changes import (
    ChangedField,
    diff_post,
    field_names,
    populated_fields,
)
from changelog_store.services.pagination import FeedPaginator
from changelog_store.services.slugs import SlugResolver
from changelog_store.services.unread import UnreadTracker
from changelog_store.services.validation import (
    create_excerpt,
    normalize_actor_id,
    normalize_body,
    normalize_expected_revision,
    normalize_search,
    normalize_slug,
    normalize_title,
    parse_category,
    parse_status,
    require_publishable,
    resolve_tenant_assignment,
)

logger = logging.getLogger(__name__)

__all__ = ["TenantScopedContentStore", "new_post_id"]


def new_post_id() -> str:
    """Default id generator: a random UUID string."""
    return str(uuid.uuid4())


def _check_revision(post: Post, expected_revision: int | None) -> None:
    if expected_revision is not None and post.revision != expected_revision:
        logger.debug(
            "Rejected write to post %s: expected revision %d, found %d",
            post.id,
            expected_revision,
            post.revision,
        )
        raise ConflictError("revision mismatch")


class TenantScopedContentStore:
    """Aggregate root for changelog posts.

    Args:
        repository: Persistence port (SQLAlchemy in production, in-memory in tests).
        clock: Source of "now"; every timestamp the store writes comes from here.
        id_generator: Produces ids for new posts.
        config: Limits and bounds; defaults to the process settings.
    """

    def __init__(
        self,
        repository: PostRepository,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_generator: Callable[[], str] = new_post_id,
        config: Settings | None = None,
        slugs: SlugResolver | None = None,
        audit: AuditTrail | None = None,
        paginator: FeedPaginator | None = None,
        unread: UnreadTracker | None = None,
    ) -> None:
        cfg = config or default_settings
        self.repository = repository
        self.clock = clock
        self.id_generator = id_generator
        self.config = cfg
        self.slugs = slugs or SlugResolver(
            max_length=cfg.slug_max_length,
            max_attempts=cfg.slug_probe_attempts,
        )
        self.audit = audit or AuditTrail()
        self.paginator = paginator or FeedPaginator(
            default_limit=cfg.feed_default_limit,
            max_limit=cfg.feed_max_limit,
            admin_default_limit=cfg.admin_default_limit,
            admin_max_limit=cfg.admin_max_limit,
        )
        self.unread = unread or UnreadTracker(repository, clock=clock)

    # ------------------------------------------------------------------ writes

    def create_post(
        self,
        actor_id: str,
        scope: TenantScope,
        *,
        title: str,
        category: str,
        body_markdown: str,
        slug: str | None = None,
        tenant_id: str | None | Unset = UNSET,
    ) -> AdminPostSummary:
        """Create a draft post at revision 1.

        ``tenant_id`` defaults to the caller's own tenant; pass ``None``
        explicitly to create a global post.

        Raises:
            ValidationError: If any field is malformed.
            ConflictError: If the slug is taken or no free variant exists.
        """
        actor = normalize_actor_id(actor_id)
        clean_title = normalize_title(title)
        body = normalize_body(body_markdown)
        clean_category = parse_category(category)
        owner = resolve_tenant_assignment(tenant_id, scope)
        if owner is UNSET:
            owner = scope.tenant_id

        with self.repository.transaction() as tx:
            now = self.clock()
            post = Post(
                id=self.id_generator(),
                tenant_id=owner,
                visibility=PostVisibility.AUTHENTICATED,
                status=PostStatus.DRAFT,
                category=clean_category,
                title=clean_title,
                slug=self.slugs.resolve_unique(tx, slug, clean_title),
                body_markdown=body,
                published_at=None,
                created_at=now,
                updated_at=now,
                created_by_actor_id=actor,
                updated_by_actor_id=actor,
                revision=1,
            )
            tx.insert_post(post)
            self.audit.append(
                tx,
                tenant_id=post.tenant_id,
                actor_id=actor,
                action=AuditAction.CREATE,
                post_id=post.id,
                at=now,
                metadata={"changed_fields": field_names(populated_fields(post))},
            )
            summary = AdminPostSummary.from_post(post)

        logger.info(
            "Created post %s (slug=%s) for tenant %s by %s",
            summary.id,
            summary.slug,
            summary.tenant_id or "<global>",
            actor,
        )
        return summary

    def update_post(
        self,
        actor_id: str,
        scope: TenantScope,
        post_id: str,
        *,
        title: str | Unset = UNSET,
        slug: str | Unset = UNSET,
        category: str | Unset = UNSET,
        body_markdown: str | Unset = UNSET,
        tenant_id: str | None | Unset = UNSET,
        expected_revision: int | None = None,
    ) -> AdminPostSummary | None:
        """Apply the supplied fields to a post.

        Fields left ``UNSET`` are untouched. If nothing actually changes the
        current summary is returned with no revision bump and no audit row.
        An explicit slug is taken as final: a collision raises instead of being
        suffixed.

        Returns:
            The updated summary, or ``None`` if the post is not visible in scope.

        Raises:
            ValidationError: If a field is malformed, or the edit would leave a
                published post without a title or body.
            ConflictError: On revision mismatch or slug collision.
        """
        actor = normalize_actor_id(actor_id)
        expected = normalize_expected_revision(expected_revision)
        proposed: dict[ChangedField, Any] = {}
        if title is not UNSET:
            proposed[ChangedField.TITLE] = normalize_title(title)
        if slug is not UNSET:
            proposed[ChangedField.SLUG] = self.slugs.resolve_explicit(slug)
        if category is not UNSET:
            proposed[ChangedField.CATEGORY] = parse_category(category)
        if body_markdown is not UNSET:
            proposed[ChangedField.BODY_MARKDOWN] = normalize_body(body_markdown)
        owner = resolve_tenant_assignment(tenant_id, scope)
        if owner is not UNSET:
            proposed[ChangedField.TENANT_ID] = owner

        with self.repository.transaction() as tx:
            post = self._locked_in_scope(tx, scope, post_id)
            if post is None:
                return None
            _check_revision(post, expected)

            changes = diff_post(post, proposed)
            if not changes:
                logger.debug("Update of post %s by %s changed nothing", post.id, actor)
                return AdminPostSummary.from_post(post)

            for field, value in changes.items():
                setattr(post, field.value, value)
            if post.status == PostStatus.PUBLISHED:
                require_publishable(post.title, post.body_markdown)

            now = self.clock()
            post.updated_at = now
            post.updated_by_actor_id = actor
            post.revision += 1
            tx.save_post(post)
            self.audit.append(
                tx,
                tenant_id=post.tenant_id,
                actor_id=actor,
                action=AuditAction.UPDATE,
                post_id=post.id,
                at=now,
                metadata={"changed_fields": field_names(changes)},
            )
            summary = AdminPostSummary.from_post(post)

        logger.info(
            "Updated post %s to revision %d by %s (fields: %s)",
            summary.id,
            summary.revision,
            actor,
            ", ".join(field_names(changes)),
        )
        return summary

    def publish_post(
        self,
        actor_id: str,
        scope: TenantScope,
        post_id: str,
        *,
        expected_revision: int | None = None,
    ) -> AdminPostSummary | None:
        """Move a draft to ``published``.

        ``published_at`` is stamped only when it is currently empty.

        Raises:
            ValidationError: If the title or body is empty.
            ConflictError: On revision mismatch or if already published.
        """
        return self._transition(
            actor_id, scope, post_id, PostStatus.PUBLISHED, AuditAction.PUBLISH, expected_revision
        )

    def unpublish_post(
        self,
        actor_id: str,
        scope: TenantScope,
        post_id: str,
        *,
        expected_revision: int | None = None,
    ) -> AdminPostSummary | None:
        """Return a published post to ``draft`` and clear ``published_at``."""
        return self._transition(
            actor_id, scope, post_id, PostStatus.DRAFT, AuditAction.UNPUBLISH, expected_revision
        )

    def _transition(
        self,
        actor_id: str,
        scope: TenantScope,
        post_id: str,
        target: PostStatus,
        action: AuditAction,
        expected_revision: int | None,
    ) -> AdminPostSummary | None:
        actor = normalize_actor_id(actor_id)
        expected = normalize_expected_revision(expected_revision)

        with self.repository.transaction() as tx:
            post = self._locked_in_scope(tx, scope, post_id)
            if post is None:
                return None
            _check_revision(post, expected)
            if post.status == target:
                logger.debug("Post %s is already %s", post.id, target.value)
                raise ConflictError(f"post already {target.value}")
            if target == PostStatus.PUBLISHED:
                require_publishable(post.title, post.body_markdown)

            now = self.clock()
            previous = PostStatus(post.status)
            post.status = target
            if target == PostStatus.PUBLISHED:
                post.published_at = post.published_at or now
            else:
                post.published_at = None
            post.updated_at = now
            post.updated_by_actor_id = actor
            post.revision += 1
            tx.save_post(post)
            self.audit.append(
                tx,
                tenant_id=post.tenant_id,
                actor_id=actor,
                action=action,
                post_id=post.id,
                at=now,
                metadata={"previous_status": previous.value, "new_status": target.value},
            )
            summary = AdminPostSummary.from_post(post)

        logger.info(
            "Post %s %s by %s (revision %d)",
            summary.id,
            "published" if target == PostStatus.PUBLISHED else "unpublished",
            actor,
            summary.revision,
        )
        return summary

    @staticmethod
    def _locked_in_scope(tx: PostTransaction, scope: TenantScope, post_id: str) -> Post | None:
        if not isinstance(post_id, str) or not post_id:
            return None
        post = tx.get_for_update(post_id)
        if post is None or not post.visible_to(scope.tenant_id):
            return None
        return post

    # ------------------------------------------------------------------- reads

    def list_published(
        self,
        scope: TenantScope,
        *,
        cursor: str | Cursor | None = None,
        limit: int | None = None,
    ) -> FeedPage[PublicPostSummary]:
        """One page of the reader feed, newest first.

        Raises:
            ValidationError: If the cursor or limit is malformed.
        """
        excerpt_length = self.config.excerpt_max_length

        def to_summary(post: Post) -> PublicPostSummary:
            return PublicPostSummary(
                id=post.id,
                title=post.title,
                slug=post.slug,
                category=post.category,
                published_at=post.published_at,
                excerpt=create_excerpt(post.body_markdown, excerpt_length),
            )

        return self.paginator.next_page(
            lambda after, size: self.repository.list_published(
                scope.tenant_id, after=after, limit=size
            ),
            cursor=cursor,
            limit=limit,
            transform=to_summary,
        )

    def find_published_by_slug(self, scope: TenantScope, slug: str) -> PublicPostDetail | None:
        """Published post with ``slug`` visible in scope, or ``None``.

        Raises:
            ValidationError: If ``slug`` is not a well-formed slug.
        """
        post = self.repository.find_published_by_slug(scope.tenant_id, normalize_slug(slug))
        if post is None or post.published_at is None:
            return None
        return PublicPostDetail(
            id=post.id,
            tenant_id=post.tenant_id,
            title=post.title,
            slug=post.slug,
            category=post.category,
            published_at=post.published_at,
            body_markdown=post.body_markdown,
        )

    def get_post(self, scope: TenantScope, post_id: str) -> AdminPostDetail | None:
        """Load any post (draft or published) visible in scope for editing."""
        post = self.repository.get_post(post_id)
        if post is None or not post.visible_to(scope.tenant_id):
            return None
        return AdminPostDetail.from_post(post)

    def list_admin(
        self,
        scope: TenantScope,
        *,
        pagination: Pagination | None = None,
        status: str | None = None,
        tenant_filter: TenantFilter | str = TenantFilter.ALL,
        query: str | None = None,
    ) -> list[AdminPostSummary]:
        """Drafts and published posts for the publisher list.

        Published posts come first, newest publication first, followed by
        drafts ordered by last edit.
        """
        if pagination is None:
            checked = self.paginator.admin_pagination(None)
        else:
            checked = self.paginator.admin_pagination(pagination.limit, pagination.offset)
        try:
            resolved_filter = TenantFilter(tenant_filter)
        except ValueError:
            raise ValidationError(
                "tenant filter must be one of: all, tenant, global", field="tenant_filter"
            ) from None

        rows = self.repository.list_admin(
            AdminQuery(
                tenant_id=scope.tenant_id,
                limit=checked.limit,
                offset=checked.offset,
                status=parse_status(status) if status is not None else None,
                tenant_filter=resolved_filter,
                search=normalize_search(query, self.config.admin_search_max_length),
            )
        )
        return [AdminPostSummary.from_post(post) for post in rows]

    def list_audit(self, scope: TenantScope, post_id: str) -> list[AuditRecord] | None:
        """Audit history for a post visible in scope, newest first.

        Rows written while the post belonged to another tenant stay hidden even
        after the post is made global.
        """
        if self.get_post(scope, post_id) is None:
            return None
        entries = self.repository.list_audit(post_id, scope.tenant_id)
        return [AuditRecord.from_entry(entry) for entry in entries]

    # ------------------------------------------------------------------ unread

    def has_unread(self, scope: TenantScope, user_id: str) -> bool:
        return self.unread.has_unread(scope, user_id)

    def mark_seen(self, scope: TenantScope, user_id: str) -> datetime:
        return self.unread.mark_seen(scope, user_id)
