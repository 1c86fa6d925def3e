"""SQLAlchemy-backed persistence for changelog posts."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import and_, case, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from changelog_store.domain import AdminQuery, Cursor, TenantFilter
from changelog_store.errors import ConflictError
from changelog_store.models import AuditLogEntry, Post, PostStatus, PostVisibility, ReadState
from changelog_store.repositories.base import SLUG_CONFLICT_MESSAGE

logger = logging.getLogger(__name__)

__all__ = ["SqlAlchemyPostRepository", "SqlAlchemyPostTransaction"]

_UNIQUE_VIOLATION_SQLSTATE = "23505"


def _is_slug_violation(exc: IntegrityError) -> bool:
    """Return True when ``exc`` came from the unique index on ``slug``."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    message = str(orig).lower()
    if code is not None and code != _UNIQUE_VIOLATION_SQLSTATE:
        return False
    if code is None and "unique" not in message:
        return False
    return "slug" in message


def _visible_to(tenant_id: str) -> ColumnElement[bool]:
    return or_(Post.tenant_id == tenant_id, Post.tenant_id.is_(None))


def _published_feed(tenant_id: str) -> list[ColumnElement[bool]]:
    return [
        _visible_to(tenant_id),
        Post.status == PostStatus.PUBLISHED,
        Post.visibility == PostVisibility.AUTHENTICATED,
    ]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlAlchemyPostTransaction:
    """Unit of work bound to one session and one database transaction."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _flush(self) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            if _is_slug_violation(exc):
                raise ConflictError(SLUG_CONFLICT_MESSAGE) from exc
            raise

    def get_for_update(self, post_id: str) -> Post | None:
        result = self.session.execute(
            select(Post).where(Post.id == post_id).with_for_update()
        )
        return result.scalars().first()

    def slug_taken(self, slug: str) -> bool:
        result = self.session.execute(select(Post.id).where(Post.slug == slug).limit(1))
        return result.first() is not None

    def insert_post(self, post: Post) -> Post:
        self.session.add(post)
        self._flush()
        return post

    def save_post(self, post: Post) -> Post:
        self._flush()
        return post

    def append_audit(self, entry: AuditLogEntry) -> None:
        self.session.add(entry)
        self.session.flush()

    def upsert_read_state(self, tenant_id: str, user_id: str, seen_at: datetime) -> datetime:
        dialect = self.session.get_bind().dialect.name
        if dialect in {"postgresql", "sqlite"}:
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = insert(ReadState).values(
                tenant_id=tenant_id,
                user_id=user_id,
                last_seen_at=seen_at,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["tenant_id", "user_id"],
                set_={"last_seen_at": stmt.excluded.last_seen_at},
            )
            self.session.execute(stmt)
        else:
            self.session.merge(
                ReadState(tenant_id=tenant_id, user_id=user_id, last_seen_at=seen_at)
            )
            self.session.flush()
        return seen_at


class SqlAlchemyPostRepository:
    """Production repository. Each transaction uses a fresh session from the factory."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    @contextmanager
    def transaction(self) -> Iterator[SqlAlchemyPostTransaction]:
        session = self.session_factory()
        try:
            with session.begin():
                yield SqlAlchemyPostTransaction(session)
        finally:
            session.close()

    @contextmanager
    def _read_session(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
        finally:
            session.close()

    def get_post(self, post_id: str) -> Post | None:
        with self._read_session() as session:
            return session.get(Post, post_id)

    def list_published(self, tenant_id: str, *, after: Cursor | None, limit: int) -> list[Post]:
        stmt = select(Post).where(*_published_feed(tenant_id))
        if after is not None:
            stmt = stmt.where(
                or_(
                    Post.published_at < after.published_at,
                    and_(Post.published_at == after.published_at, Post.id < after.post_id),
                )
            )
        stmt = stmt.order_by(Post.published_at.desc(), Post.id.desc()).limit(limit)
        with self._read_session() as session:
            return list(session.execute(stmt).scalars())

    def find_published_by_slug(self, tenant_id: str, slug: str) -> Post | None:
        stmt = select(Post).where(Post.slug == slug, *_published_feed(tenant_id)).limit(1)
        with self._read_session() as session:
            return session.execute(stmt).scalars().first()

    def list_admin(self, query: AdminQuery) -> list[Post]:
        stmt = select(Post).where(_visible_to(query.tenant_id))
        if query.status is not None:
            stmt = stmt.where(Post.status == query.status)
        if query.tenant_filter is TenantFilter.TENANT:
            stmt = stmt.where(Post.tenant_id == query.tenant_id)
        elif query.tenant_filter is TenantFilter.GLOBAL:
            stmt = stmt.where(Post.tenant_id.is_(None))
        if query.search:
            pattern = f"%{_escape_like(query.search)}%"
            stmt = stmt.where(
                or_(
                    Post.title.ilike(pattern, escape="\\"),
                    Post.slug.ilike(pattern, escape="\\"),
                )
            )
        # Published first by recency, then drafts by last edit.
        stmt = (
            stmt.order_by(
                case((Post.status == PostStatus.PUBLISHED, 0), else_=1),
                Post.published_at.desc(),
                Post.updated_at.desc(),
                Post.id.desc(),
            )
            .offset(query.offset)
            .limit(query.limit)
        )
        with self._read_session() as session:
            return list(session.execute(stmt).scalars())

    def get_read_state(self, tenant_id: str, user_id: str) -> datetime | None:
        with self._read_session() as session:
            state = session.get(ReadState, (tenant_id, user_id))
            return state.last_seen_at if state is not None else None

    def exists_published_after(self, tenant_id: str, watermark: datetime | None) -> bool:
        stmt = select(Post.id).where(*_published_feed(tenant_id))
        if watermark is not None:
            stmt = stmt.where(Post.published_at > watermark)
        with self._read_session() as session:
            return session.execute(stmt.limit(1)).first() is not None

    def list_audit(self, post_id: str, tenant_id: str) -> list[AuditLogEntry]:
        stmt = (
            select(AuditLogEntry)
            .where(
                AuditLogEntry.post_id == post_id,
                or_(AuditLogEntry.tenant_id == tenant_id, AuditLogEntry.tenant_id.is_(None)),
            )
            .order_by(AuditLogEntry.at.desc(), AuditLogEntry.id.desc())
        )
        with self._read_session() as session:
            return list(session.execute(stmt).scalars())
