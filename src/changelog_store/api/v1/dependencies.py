"""Shared API dependencies for request scope and the content store."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from changelog_store.db.session import SessionLocal
from changelog_store.domain import TenantScope
from changelog_store.errors import ValidationError
from changelog_store.repositories import SqlAlchemyPostRepository
from changelog_store.services import TenantScopedContentStore

_store: TenantScopedContentStore | None = None


def get_content_store() -> TenantScopedContentStore:
    """Return the process-wide content store bound to ``SessionLocal``.

    Tests replace this dependency through ``app.dependency_overrides``.
    """
    global _store
    if _store is None:
        _store = TenantScopedContentStore(SqlAlchemyPostRepository(SessionLocal))
    return _store


def get_tenant_scope(
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> TenantScope:
    """Build the tenant scope from the header set by the auth gateway.

    Raises:
        HTTPException: 401 if the header is missing or blank.
    """
    try:
        return TenantScope(x_tenant_id or "")
    except ValidationError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing tenant context",
        ) from err


def get_actor_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Return the authenticated user id from the auth gateway header."""
    actor_id = (x_user_id or "").strip()
    if not actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing user context",
        )
    return actor_id


# Type aliases for dependency injection
StoreDep = Annotated[TenantScopedContentStore, Depends(get_content_store)]
ScopeDep = Annotated[TenantScope, Depends(get_tenant_scope)]
ActorDep = Annotated[str, Depends(get_actor_id)]
