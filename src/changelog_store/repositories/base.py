"""Persistence port used by the content store.

Two implementations exist: :mod:`.sqlalchemy_repo` for production and
:mod:`.memory_repo` as a test double. Both are exercised by the same invariant
tests, so they must agree on visibility filtering, ordering, locking and
unique-slug behaviour.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Protocol

from changelog_store.domain import AdminQuery, Cursor
from changelog_store.models import AuditLogEntry, Post

__all__ = ["PostRepository", "PostTransaction", "SLUG_CONFLICT_MESSAGE"]

SLUG_CONFLICT_MESSAGE = "slug already exists"


class PostTransaction(Protocol):
    """Unit of work for one store mutation.

    Everything written through a transaction commits together when the
    ``transaction()`` block exits normally and is discarded if it raises.
    """

    def get_for_update(self, post_id: str) -> Post | None:
        """Load a post and hold an exclusive row lock until the transaction ends."""

    def slug_taken(self, slug: str) -> bool:
        """Return True if any post, in any tenant, already uses ``slug``."""

    def insert_post(self, post: Post) -> Post:
        """Insert a new post.

        Raises:
            ConflictError: If the slug collides with an existing post.
        """

    def save_post(self, post: Post) -> Post:
        """Persist changes to a post previously returned by :meth:`get_for_update`.

        Raises:
            ConflictError: If a slug change collides with an existing post.
        """

    def append_audit(self, entry: AuditLogEntry) -> None:
        """Append one audit row."""

    def upsert_read_state(self, tenant_id: str, user_id: str, seen_at: datetime) -> datetime:
        """Create or overwrite a user's watermark and return it."""


class PostRepository(Protocol):
    """Entry point for transactions and lock-free reads."""

    def transaction(self) -> AbstractContextManager[PostTransaction]:
        ...

    def get_post(self, post_id: str) -> Post | None:
        ...

    def list_published(self, tenant_id: str, *, after: Cursor | None, limit: int) -> list[Post]:
        """Published posts visible to ``tenant_id`` sorted ``published_at DESC, id DESC``."""

    def find_published_by_slug(self, tenant_id: str, slug: str) -> Post | None:
        ...

    def list_admin(self, query: AdminQuery) -> list[Post]:
        """Drafts and published posts for the publisher list."""

    def get_read_state(self, tenant_id: str, user_id: str) -> datetime | None:
        ...

    def exists_published_after(self, tenant_id: str, watermark: datetime | None) -> bool:
        """Return True if a visible published post is newer than ``watermark``."""

    def list_audit(self, post_id: str, tenant_id: str) -> list[AuditLogEntry]:
        """Audit rows for a post that ``tenant_id`` may see (its own or global), newest first."""
