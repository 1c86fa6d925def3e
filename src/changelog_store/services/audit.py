"""Audit trail for publisher actions."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

from changelog_store.core.redaction import FORBIDDEN_KEYS, sanitize_metadata
from changelog_store.models import AuditAction, AuditLogEntry

if TYPE_CHECKING:
    from changelog_store.repositories.base import PostTransaction

logger = logging.getLogger(__name__)

__all__ = ["AuditTrail", "FORBIDDEN_KEYS"]


class AuditTrail:
    """Sanitizes metadata and appends immutable audit rows."""

    @staticmethod
    def sanitize(metadata: Mapping[str, Any] | None) -> dict[str, Any] | None:
        """Drop content-bearing keys at any depth; ``None`` if nothing survives."""
        return sanitize_metadata(metadata)

    def append(
        self,
        tx: PostTransaction,
        *,
        tenant_id: str | None,
        actor_id: str,
        action: AuditAction,
        post_id: str,
        at: datetime,
        metadata: Mapping[str, Any] | None = None,
    ) -> AuditLogEntry:
        """Write one audit row inside ``tx`` so it commits or rolls back with the mutation."""
        entry = AuditLogEntry(
            tenant_id=tenant_id,
            actor_id=actor_id,
            action=action,
            post_id=post_id,
            at=at,
            metadata_=self.sanitize(metadata),
        )
        tx.append_audit(entry)
        logger.debug("Audit %s recorded for post %s by %s", action, post_id, actor_id)
        return entry
