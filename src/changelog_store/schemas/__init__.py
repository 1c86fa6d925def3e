# src/changelog_store/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .post import (
    AdminPostDetailResponse,
    AdminPostResponse,
    AuditRecordResponse,
    FeedPageResponse,
    PostCreate,
    PostUpdate,
    PublicPostDetailResponse,
    PublicPostResponse,
    SeenResponse,
    TransitionRequest,
    UnreadResponse,
)

__all__ = [
    "AdminPostDetailResponse", "AdminPostResponse",
    "AuditRecordResponse",
    "FeedPageResponse",
    "PostCreate", "PostUpdate", "TransitionRequest",
    "PublicPostDetailResponse", "PublicPostResponse",
    "SeenResponse", "UnreadResponse",
]
