# src/changelog_store/api/v1/endpoints/admin.py
"""Publisher endpoints for drafting, editing and publishing posts."""

from typing import Any

from fastapi import APIRouter, HTTPException, Query, status

from changelog_store.api.v1.dependencies import ActorDep, ScopeDep, StoreDep
from changelog_store.domain import TenantFilter, TenantScope
from changelog_store.schemas.post import (
    AdminPostDetailResponse,
    AdminPostResponse,
    AuditRecordResponse,
    PostCreate,
    PostUpdate,
    TransitionRequest,
)

router = APIRouter(prefix="/admin/posts", tags=["admin"])


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Post not found",
    )


def _tenant_filter(value: str | None, scope: TenantScope) -> str:
    """Map the ``tenant_id`` query parameter onto a tenant filter.

    The caller's own tenant id is accepted as a synonym for ``tenant``.
    """
    if value is None:
        return TenantFilter.ALL
    if value == scope.tenant_id:
        return TenantFilter.TENANT
    return value


@router.get("", response_model=list[AdminPostResponse])
def list_posts(
    store: StoreDep,
    scope: ScopeDep,
    _actor: ActorDep,
    status_filter: str | None = Query(None, alias="status", description="draft or published"),
    tenant_id: str | None = Query(None, description="all, tenant, global, or the caller's tenant id"),
    q: str | None = Query(None, description="Case-insensitive search over title and slug"),
    limit: int | None = Query(None, description="Maximum number of posts to return"),
    offset: int | None = Query(None, description="Number of posts to skip"),
) -> list[AdminPostResponse]:
    """List drafts and published posts visible to the caller."""
    pagination = store.paginator.admin_pagination(limit, offset)
    posts = store.list_admin(
        scope,
        pagination=pagination,
        status=status_filter,
        tenant_filter=_tenant_filter(tenant_id, scope),
        query=q,
    )
    return [AdminPostResponse.model_validate(post) for post in posts]


@router.post("", response_model=AdminPostResponse, status_code=status.HTTP_201_CREATED)
def create_post(
    payload: PostCreate,
    store: StoreDep,
    scope: ScopeDep,
    actor_id: ActorDep,
) -> AdminPostResponse:
    """Create a new draft."""
    extra: dict[str, Any] = {}
    if "tenant_id" in payload.model_fields_set:
        extra["tenant_id"] = payload.tenant_id
    summary = store.create_post(
        actor_id,
        scope,
        title=payload.title,
        category=payload.category,
        body_markdown=payload.body_markdown,
        slug=payload.slug,
        **extra,
    )
    return AdminPostResponse.model_validate(summary)


@router.get("/{post_id}", response_model=AdminPostDetailResponse)
def get_post(
    post_id: str,
    store: StoreDep,
    scope: ScopeDep,
    _actor: ActorDep,
) -> AdminPostDetailResponse:
    detail = store.get_post(scope, post_id)
    if detail is None:
        raise _not_found()
    return AdminPostDetailResponse.model_validate(detail)


@router.get("/{post_id}/audit", response_model=list[AuditRecordResponse])
def list_audit(
    post_id: str,
    store: StoreDep,
    scope: ScopeDep,
    _actor: ActorDep,
) -> list[AuditRecordResponse]:
    """Audit history for a post, newest first."""
    records = store.list_audit(scope, post_id)
    if records is None:
        raise _not_found()
    return [AuditRecordResponse.model_validate(record) for record in records]


@router.patch("/{post_id}", response_model=AdminPostResponse)
def update_post(
    post_id: str,
    payload: PostUpdate,
    store: StoreDep,
    scope: ScopeDep,
    actor_id: ActorDep,
) -> AdminPostResponse:
    """Apply a partial update. Fields absent from the body are left unchanged."""
    supplied = payload.model_fields_set
    changes: dict[str, Any] = {
        name: getattr(payload, name)
        for name in ("title", "slug", "category", "body_markdown", "tenant_id")
        if name in supplied
    }
    summary = store.update_post(
        actor_id,
        scope,
        post_id,
        expected_revision=payload.expected_revision,
        **changes,
    )
    if summary is None:
        raise _not_found()
    return AdminPostResponse.model_validate(summary)


@router.post("/{post_id}/publish", response_model=AdminPostResponse)
def publish_post(
    post_id: str,
    store: StoreDep,
    scope: ScopeDep,
    actor_id: ActorDep,
    payload: TransitionRequest | None = None,
) -> AdminPostResponse:
    summary = store.publish_post(
        actor_id,
        scope,
        post_id,
        expected_revision=payload.expected_revision if payload else None,
    )
    if summary is None:
        raise _not_found()
    return AdminPostResponse.model_validate(summary)


@router.post("/{post_id}/unpublish", response_model=AdminPostResponse)
def unpublish_post(
    post_id: str,
    store: StoreDep,
    scope: ScopeDep,
    actor_id: ActorDep,
    payload: TransitionRequest | None = None,
) -> AdminPostResponse:
    summary = store.unpublish_post(
        actor_id,
        scope,
        post_id,
        expected_revision=payload.expected_revision if payload else None,
    )
    if summary is None:
        raise _not_found()
    return AdminPostResponse.model_validate(summary)
