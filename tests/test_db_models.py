"""Unit tests for the ORM models defined in changelog_store.models.

These tests verify basic mapping correctness: table names, composite
primary keys, JSON column naming (metadata vs metadata_), and the
constraints the database relies on for the publish invariant.
"""

from datetime import UTC, datetime

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from changelog_store.models import (
    AuditLogEntry,
    Post,
    PostCategory,
    PostStatus,
    PostVisibility,
    ReadState,
)

NOW = datetime(2024, 2, 1, 8, 0, tzinfo=UTC)


def _post(**overrides) -> Post:
    values = {
        "id": "post-0001",
        "tenant_id": "tenant-a",
        "visibility": PostVisibility.AUTHENTICATED,
        "status": PostStatus.DRAFT,
        "category": PostCategory.NEW,
        "title": "Title",
        "slug": "title",
        "body_markdown": "Body",
        "published_at": None,
        "created_at": NOW,
        "updated_at": NOW,
        "created_by_actor_id": "editor-1",
        "updated_by_actor_id": "editor-1",
        "revision": 1,
    }
    values.update(overrides)
    return Post(**values)


def test_table_names():
    """Model classes expose expected __tablename__ values."""
    assert Post.__tablename__ == "changelog_posts"
    assert ReadState.__tablename__ == "changelog_read_state"
    assert AuditLogEntry.__tablename__ == "changelog_audit_log"


def test_read_state_composite_primary_key():
    """Read state is keyed by (tenant_id, user_id)."""
    pk_names = {c.name for c in ReadState.__table__.primary_key}
    assert pk_names == {"tenant_id", "user_id"}


def test_metadata_column_and_attribute():
    """JSON metadata column should be named 'metadata' in the DB but exposed
    on the model as the attribute `metadata_` to avoid shadowing DeclarativeBase.metadata.
    """
    assert "metadata" in AuditLogEntry.__table__.c
    assert hasattr(AuditLogEntry, "metadata_")


def test_slug_is_globally_unique():
    assert Post.__table__.c.slug.unique


def test_visibility_helpers():
    assert _post(tenant_id=None).is_global
    assert _post(tenant_id=None).visible_to("anyone")
    assert _post().visible_to("tenant-a")
    assert not _post().visible_to("tenant-b")


def test_timestamps_round_trip_as_utc(session_factory):
    with session_factory() as session, session.begin():
        session.add(_post())

    with session_factory() as session:
        stored = session.execute(select(Post)).scalar_one()
        assert stored.created_at == NOW
        assert stored.created_at.tzinfo is not None
        assert stored.status == PostStatus.DRAFT


@pytest.mark.parametrize(
    "overrides",
    [
        {"status": PostStatus.PUBLISHED, "published_at": None},
        {"status": PostStatus.DRAFT, "published_at": NOW},
        {"status": PostStatus.PUBLISHED, "published_at": NOW, "title": "  "},
        {"status": PostStatus.PUBLISHED, "published_at": NOW, "body_markdown": ""},
        {"revision": 0},
    ],
)
def test_check_constraints_reject_inconsistent_rows(session_factory, overrides):
    session = session_factory()
    try:
        with pytest.raises(IntegrityError):
            with session.begin():
                session.add(_post(**overrides))
    finally:
        session.close()
