# src/changelog_store/models/__init__.py
"""SQLAlchemy models for the changelog store."""

from .audit_log import AuditAction, AuditLogEntry
from .post import Post, PostCategory, PostStatus, PostVisibility
from .read_state import ReadState

__all__ = [
    "AuditAction", "AuditLogEntry",
    "Post", "PostCategory", "PostStatus", "PostVisibility",
    "ReadState",
]
