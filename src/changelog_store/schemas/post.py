# src/changelog_store/schemas/post.py
"""Post-related Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from changelog_store.models import AuditAction, PostCategory, PostStatus, PostVisibility


class PostCreate(BaseModel):
    """Schema for creating a draft post.

    Omitting ``tenant_id`` creates the post for the caller's tenant; sending
    ``null`` creates a global post.
    """

    title: str = Field("", description="Post title; may be empty while drafting")
    category: str = Field(..., description="One of: new, improvement, fix")
    body_markdown: str = Field("", description="Markdown body")
    slug: str | None = Field(None, description="Explicit slug; generated from the title when omitted")
    tenant_id: str | None = Field(None, description="Owning tenant, or null for a global post")


class PostUpdate(BaseModel):
    """Partial update. Only fields present in the request body are applied."""

    title: str | None = None
    slug: str | None = None
    category: str | None = None
    body_markdown: str | None = None
    tenant_id: str | None = None
    expected_revision: int | None = Field(None, description="Reject the update unless this matches")


class TransitionRequest(BaseModel):
    """Optional body for publish and unpublish."""

    expected_revision: int | None = Field(None, description="Reject the change unless this matches")


class AdminPostResponse(BaseModel):
    """Post metadata returned to publishers."""

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

    model_config = ConfigDict(from_attributes=True)


class AdminPostDetailResponse(AdminPostResponse):
    """Post metadata plus the markdown body, for the editor."""

    body_markdown: str

    @model_validator(mode="before")
    @classmethod
    def _flatten_summary(cls, data: object) -> object:
        summary = getattr(data, "summary", None)
        if summary is None:
            return data
        flattened: dict[str, Any] = {
            field_name: getattr(summary, field_name, None)
            for field_name in AdminPostResponse.model_fields
        }
        flattened["body_markdown"] = getattr(data, "body_markdown", "")
        return flattened


class PublicPostResponse(BaseModel):
    """Feed entry shown to readers."""

    id: str
    title: str
    slug: str
    category: PostCategory
    published_at: datetime
    excerpt: str

    model_config = ConfigDict(from_attributes=True)


class PublicPostDetailResponse(BaseModel):
    id: str
    tenant_id: str | None
    title: str
    slug: str
    category: PostCategory
    published_at: datetime
    body_markdown: str

    model_config = ConfigDict(from_attributes=True)


class FeedPageResponse(BaseModel):
    """One page of the reader feed."""

    items: list[PublicPostResponse]
    limit: int
    next_cursor: str | None = Field(None, description="Opaque token for the next page")
    has_more: bool

    model_config = ConfigDict(from_attributes=True)


class AuditRecordResponse(BaseModel):
    tenant_id: str | None
    actor_id: str
    action: AuditAction
    post_id: str | None
    at: datetime
    metadata: dict[str, Any] | None = None

    model_config = ConfigDict(from_attributes=True)


class UnreadResponse(BaseModel):
    has_unread: bool


class SeenResponse(BaseModel):
    last_seen_at: datetime
