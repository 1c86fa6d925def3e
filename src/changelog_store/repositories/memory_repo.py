"""In-memory repository used as a test double.

It mirrors the guarantees of the relational backend closely enough for the
shared invariant tests to run under concurrent harnesses:

* ``get_for_update`` takes a per-post lock held until the transaction ends,
  so mutations of the same post serialize while different posts proceed in
  parallel;
* inserts and slug changes reserve the slug immediately, which behaves like a
  unique index seeing in-flight rows;
* writes are staged on the transaction and only applied on commit, so a
  failing operation leaves nothing behind;
* every read returns detached copies, never the stored objects.
"""

from __future__ import annotations

import copy
import itertools
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import TypeVar

from sqlalchemy import inspect

from changelog_store.domain import AdminQuery, Cursor, TenantFilter
from changelog_store.errors import ConflictError
from changelog_store.models import AuditLogEntry, Post, PostStatus, PostVisibility
from changelog_store.repositories.base import SLUG_CONFLICT_MESSAGE

__all__ = ["InMemoryPostRepository"]

M = TypeVar("M", Post, AuditLogEntry)


def _clone(instance: M) -> M:
    """Return a transient copy of a mapped instance."""
    mapper = inspect(type(instance))
    values = {
        attr.key: copy.deepcopy(getattr(instance, attr.key))
        for attr in mapper.column_attrs
    }
    return type(instance)(**values)


def _in_feed(post: Post, tenant_id: str) -> bool:
    return (
        post.visible_to(tenant_id)
        and post.status == PostStatus.PUBLISHED
        and post.visibility == PostVisibility.AUTHENTICATED
        and post.published_at is not None
    )


class _InMemoryTransaction:
    def __init__(self, repo: InMemoryPostRepository) -> None:
        self._repo = repo
        self._held: dict[str, threading.Lock] = {}
        self._loaded: dict[str, Post | None] = {}
        self._staged: dict[str, Post] = {}
        self._reserved: set[str] = set()
        self._audit: list[AuditLogEntry] = []
        self._read_states: dict[tuple[str, str], datetime] = {}

    def get_for_update(self, post_id: str) -> Post | None:
        if post_id in self._loaded:
            return self._loaded[post_id]
        lock = self._repo._row_lock(post_id)
        if lock is None:
            self._loaded[post_id] = None
            return None
        lock.acquire()
        self._held[post_id] = lock
        with self._repo._lock:
            stored = self._repo._posts.get(post_id)
            post = _clone(stored) if stored is not None else None
        self._loaded[post_id] = post
        return post

    def slug_taken(self, slug: str) -> bool:
        # Like a plain SELECT, other transactions' uncommitted rows are invisible.
        with self._repo._lock:
            return slug in self._repo._slugs or slug in self._reserved

    def _reserve(self, slug: str, owner_id: str) -> None:
        repo = self._repo
        with repo._lock:
            committed_owner = repo._slugs.get(slug)
            if committed_owner is not None and committed_owner != owner_id:
                raise ConflictError(SLUG_CONFLICT_MESSAGE)
            if slug in self._reserved:
                return
            if slug in repo._reservations:
                raise ConflictError(SLUG_CONFLICT_MESSAGE)
            repo._reservations.add(slug)
            self._reserved.add(slug)

    def insert_post(self, post: Post) -> Post:
        with self._repo._lock:
            if post.id in self._repo._posts or post.id in self._staged:
                raise ConflictError("post id already exists")
        self._reserve(post.slug, post.id)
        self._staged[post.id] = post
        return post

    def save_post(self, post: Post) -> Post:
        if post.id not in self._held:
            raise RuntimeError("save_post requires a post loaded with get_for_update")
        self._reserve(post.slug, post.id)
        self._staged[post.id] = post
        return post

    def append_audit(self, entry: AuditLogEntry) -> None:
        self._audit.append(entry)

    def upsert_read_state(self, tenant_id: str, user_id: str, seen_at: datetime) -> datetime:
        self._read_states[(tenant_id, user_id)] = seen_at
        return seen_at

    def commit(self) -> None:
        repo = self._repo
        with repo._lock:
            for post_id, post in self._staged.items():
                previous = repo._posts.get(post_id)
                if previous is not None and repo._slugs.get(previous.slug) == post_id:
                    del repo._slugs[previous.slug]
                repo._posts[post_id] = _clone(post)
                repo._slugs[post.slug] = post_id
            for entry in self._audit:
                stored = _clone(entry)
                stored.id = next(repo._audit_ids)
                entry.id = stored.id
                repo._audit.append(stored)
            repo._read_states.update(self._read_states)

    def close(self) -> None:
        with self._repo._lock:
            self._repo._reservations.difference_update(self._reserved)
        self._reserved.clear()
        for lock in self._held.values():
            lock.release()
        self._held.clear()


class InMemoryPostRepository:
    """Thread-safe, process-local implementation of the post repository port."""

    def __init__(
        self,
        posts: Iterable[Post] = (),
        read_states: Iterable[tuple[str, str, datetime]] = (),
    ) -> None:
        self._lock = threading.RLock()
        self._posts: dict[str, Post] = {}
        self._slugs: dict[str, str] = {}
        self._reservations: set[str] = set()
        self._row_locks: dict[str, threading.Lock] = {}
        self._audit: list[AuditLogEntry] = []
        self._audit_ids = itertools.count(1)
        self._read_states: dict[tuple[str, str], datetime] = {}

        for post in posts:
            if post.slug in self._slugs:
                raise ConflictError(SLUG_CONFLICT_MESSAGE)
            self._posts[post.id] = _clone(post)
            self._slugs[post.slug] = post.id
        for tenant_id, user_id, seen_at in read_states:
            self._read_states[(tenant_id, user_id)] = seen_at

    def _row_lock(self, post_id: str) -> threading.Lock | None:
        # Posts are never deleted, so locks exist only for committed rows.
        with self._lock:
            if post_id not in self._posts:
                return None
            return self._row_locks.setdefault(post_id, threading.Lock())

    @contextmanager
    def transaction(self) -> Iterator[_InMemoryTransaction]:
        tx = _InMemoryTransaction(self)
        try:
            yield tx
            tx.commit()
        finally:
            tx.close()

    def get_post(self, post_id: str) -> Post | None:
        with self._lock:
            post = self._posts.get(post_id)
            return _clone(post) if post is not None else None

    def list_published(self, tenant_id: str, *, after: Cursor | None, limit: int) -> list[Post]:
        with self._lock:
            rows = [post for post in self._posts.values() if _in_feed(post, tenant_id)]
            if after is not None:
                position = (after.published_at, after.post_id)
                rows = [post for post in rows if (post.published_at, post.id) < position]
            rows.sort(key=lambda post: (post.published_at, post.id), reverse=True)
            return [_clone(post) for post in rows[:limit]]

    def find_published_by_slug(self, tenant_id: str, slug: str) -> Post | None:
        with self._lock:
            post_id = self._slugs.get(slug)
            post = self._posts.get(post_id) if post_id is not None else None
            if post is None or not _in_feed(post, tenant_id):
                return None
            return _clone(post)

    def list_admin(self, query: AdminQuery) -> list[Post]:
        needle = query.search.lower() if query.search else None
        with self._lock:
            rows = [post for post in self._posts.values() if post.visible_to(query.tenant_id)]
        if query.status is not None:
            rows = [post for post in rows if post.status == query.status]
        if query.tenant_filter is TenantFilter.TENANT:
            rows = [post for post in rows if post.tenant_id == query.tenant_id]
        elif query.tenant_filter is TenantFilter.GLOBAL:
            rows = [post for post in rows if post.tenant_id is None]
        if needle:
            rows = [
                post
                for post in rows
                if needle in post.title.lower() or needle in post.slug.lower()
            ]
        # Stable sorts applied from least to most significant key.
        rows.sort(key=lambda post: post.id, reverse=True)
        rows.sort(key=lambda post: post.updated_at, reverse=True)
        rows.sort(
            key=lambda post: (post.published_at is not None, post.published_at or post.updated_at),
            reverse=True,
        )
        rows.sort(key=lambda post: post.status != PostStatus.PUBLISHED)
        window = rows[query.offset : query.offset + query.limit]
        return [_clone(post) for post in window]

    def get_read_state(self, tenant_id: str, user_id: str) -> datetime | None:
        with self._lock:
            return self._read_states.get((tenant_id, user_id))

    def exists_published_after(self, tenant_id: str, watermark: datetime | None) -> bool:
        with self._lock:
            return any(
                _in_feed(post, tenant_id)
                and (watermark is None or post.published_at > watermark)
                for post in self._posts.values()
            )

    def list_audit(self, post_id: str, tenant_id: str) -> list[AuditLogEntry]:
        with self._lock:
            rows = [
                entry
                for entry in self._audit
                if entry.post_id == post_id and entry.tenant_id in (None, tenant_id)
            ]
        rows.sort(key=lambda entry: (entry.at, entry.id), reverse=True)
        return [_clone(entry) for entry in rows]

    @property
    def audit_entries(self) -> list[AuditLogEntry]:
        """All committed audit rows in insertion order."""
        with self._lock:
            return [_clone(entry) for entry in self._audit]
