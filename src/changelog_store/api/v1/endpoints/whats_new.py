# src/changelog_store/api/v1/endpoints/whats_new.py
"""Reader-facing "What's new" endpoints."""

from fastapi import APIRouter, HTTPException, Query, status

from changelog_store.api.v1.dependencies import ActorDep, ScopeDep, StoreDep
from changelog_store.schemas.post import (
    FeedPageResponse,
    PublicPostDetailResponse,
    SeenResponse,
    UnreadResponse,
)

router = APIRouter(prefix="/whats-new", tags=["whats-new"])


@router.get("/posts", response_model=FeedPageResponse)
def list_posts(
    store: StoreDep,
    scope: ScopeDep,
    _actor: ActorDep,
    cursor: str | None = Query(None, description="Cursor returned by the previous page"),
    limit: int | None = Query(None, description="Maximum number of posts to return"),
) -> FeedPageResponse:
    """List published posts visible to the caller, newest first."""
    page = store.list_published(scope, cursor=cursor, limit=limit)
    return FeedPageResponse.model_validate(page)


@router.get("/posts/{slug}", response_model=PublicPostDetailResponse)
def get_post(
    slug: str,
    store: StoreDep,
    scope: ScopeDep,
    _actor: ActorDep,
) -> PublicPostDetailResponse:
    """Get a published post by slug."""
    post = store.find_published_by_slug(scope, slug)
    if post is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )
    return PublicPostDetailResponse.model_validate(post)


@router.get("/unread", response_model=UnreadResponse)
def get_unread(store: StoreDep, scope: ScopeDep, actor_id: ActorDep) -> UnreadResponse:
    return UnreadResponse(has_unread=store.has_unread(scope, actor_id))


@router.post("/seen", response_model=SeenResponse)
def mark_seen(store: StoreDep, scope: ScopeDep, actor_id: ActorDep) -> SeenResponse:
    """Mark the feed as seen up to now for the calling user."""
    return SeenResponse(last_seen_at=store.mark_seen(scope, actor_id))
