"""Per-user unread tracking for the changelog feed."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from changelog_store.db.time import utcnow
from changelog_store.domain import TenantScope
from changelog_store.repositories.base import PostRepository
from changelog_store.services.validation import normalize_user_id

logger = logging.getLogger(__name__)


class UnreadTracker:
    """Maintains a watermark per (tenant, user) and answers "anything new?"."""

    def __init__(
        self,
        repository: PostRepository,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repository = repository
        self.clock = clock

    def mark_seen(self, scope: TenantScope, user_id: str) -> datetime:
        """Advance the user's watermark to the server's current time and return it."""
        user = normalize_user_id(user_id)
        seen_at = self.clock()
        with self.repository.transaction() as tx:
            watermark = tx.upsert_read_state(scope.tenant_id, user, seen_at)
        logger.debug("Marked changelog seen for user %s in tenant %s", user, scope.tenant_id)
        return watermark

    def last_seen(self, scope: TenantScope, user_id: str) -> datetime | None:
        return self.repository.get_read_state(scope.tenant_id, normalize_user_id(user_id))

    def has_unread(self, scope: TenantScope, user_id: str) -> bool:
        """Return True if a visible post was published after the user's watermark.

        A user who has never marked the feed as seen has unread content as soon
        as any visible post is published.
        """
        watermark = self.last_seen(scope, user_id)
        return self.repository.exists_published_after(scope.tenant_id, watermark)
