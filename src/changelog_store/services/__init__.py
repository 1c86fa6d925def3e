# src/changelog_store/services/__init__.py
"""Business logic services for the changelog store."""

from .audit import AuditTrail
from .content_store import TenantScopedContentStore
from .pagination import FeedPaginator, decode_cursor, encode_cursor
from .slugs import SlugResolver
from .unread import UnreadTracker

__all__ = [
    "AuditTrail",
    "FeedPaginator",
    "SlugResolver",
    "TenantScopedContentStore",
    "UnreadTracker",
    "decode_cursor",
    "encode_cursor",
]
