# tests/test_memory_repo_concurrency.py
"""Concurrent writers against the in-memory repository.

SQLite ignores ``FOR UPDATE`` so these run only against the in-memory
repository, which serializes same-post transactions with per-row locks.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from typing import Any

import pytest

from changelog_store.domain import TenantScope
from changelog_store.errors import ConflictError, ValidationError
from changelog_store.models import AuditAction
from changelog_store.repositories import InMemoryPostRepository
from changelog_store.services import TenantScopedContentStore

WORKERS = 8


@pytest.fixture()
def memory_repo() -> InMemoryPostRepository:
    return InMemoryPostRepository()


@pytest.fixture()
def threaded_store(memory_repo: InMemoryPostRepository, test_settings) -> TenantScopedContentStore:
    return TenantScopedContentStore(
        memory_repo,
        id_generator=lambda: str(uuid.uuid4()),
        config=test_settings,
    )


def _run_concurrently(target: Callable[[int], Any]) -> tuple[list[Any], list[BaseException]]:
    barrier = threading.Barrier(WORKERS)
    results: list[Any] = []
    errors: list[BaseException] = []
    lock = threading.Lock()

    def worker(index: int) -> None:
        barrier.wait()
        try:
            outcome = target(index)
        except Exception as exc:  # collected for assertions below
            with lock:
                errors.append(exc)
        else:
            with lock:
                results.append(outcome)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(WORKERS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    return results, errors


def test_concurrent_creates_never_share_a_slug(threaded_store, memory_repo) -> None:
    scope = TenantScope("tenant-a")

    results, errors = _run_concurrently(
        lambda _: threaded_store.create_post(
            "editor-1", scope, title="Launch Day", category="new", body_markdown="b"
        )
    )

    slugs = [summary.slug for summary in results]
    assert results
    assert len(slugs) == len(set(slugs))
    assert all(isinstance(err, ConflictError) for err in errors)
    assert len(results) + len(errors) == WORKERS
    assert len(memory_repo.audit_entries) == len(results)


def test_concurrent_explicit_slug_has_one_winner(threaded_store) -> None:
    scope = TenantScope("tenant-a")

    results, errors = _run_concurrently(
        lambda n: threaded_store.create_post(
            "editor-1", scope, title=f"Post {n}", category="fix", body_markdown="b", slug="shared"
        )
    )

    assert len(results) == 1
    assert len(errors) == WORKERS - 1
    assert all(err.message == "slug already exists" for err in errors)


def test_same_post_updates_serialize(threaded_store, memory_repo) -> None:
    scope = TenantScope("tenant-a")
    post = threaded_store.create_post(
        "editor-1", scope, title="Start", category="new", body_markdown="b"
    )

    results, errors = _run_concurrently(
        lambda n: threaded_store.update_post("editor-1", scope, post.id, title=f"Edit {n}")
    )

    assert errors == []
    assert sorted(summary.revision for summary in results) == list(range(2, WORKERS + 2))
    final = threaded_store.get_post(scope, post.id)
    assert final.summary.revision == WORKERS + 1
    updates = [entry for entry in memory_repo.audit_entries if entry.action == AuditAction.UPDATE]
    assert len(updates) == WORKERS


def test_optimistic_lock_admits_one_writer(threaded_store) -> None:
    scope = TenantScope("tenant-a")
    post = threaded_store.create_post(
        "editor-1", scope, title="Start", category="new", body_markdown="b"
    )

    results, errors = _run_concurrently(
        lambda n: threaded_store.update_post(
            "editor-1", scope, post.id, title=f"Edit {n}", expected_revision=1
        )
    )

    assert [summary.revision for summary in results] == [2]
    assert len(errors) == WORKERS - 1
    assert all(err.message == "revision mismatch" for err in errors)


def test_failed_transaction_leaves_no_trace(memory_repo) -> None:
    scope = TenantScope("tenant-a")
    store = TenantScopedContentStore(memory_repo)
    post = store.create_post("editor-1", scope, title="", category="new", body_markdown="")

    with pytest.raises(ValidationError):
        store.publish_post("editor-1", scope, post.id)

    assert len(memory_repo.audit_entries) == 1
    assert memory_repo.get_post(post.id).revision == 1


def test_lookups_of_unknown_ids_do_not_allocate_row_locks(memory_repo, threaded_store) -> None:
    scope = TenantScope("tenant-a")
    for n in range(50):
        assert threaded_store.update_post("editor-1", scope, f"missing-{n}", title="x") is None

    assert memory_repo._row_locks == {}

    post = threaded_store.create_post("editor-1", scope, title="Real", category="new", body_markdown="b")
    threaded_store.update_post("editor-1", scope, post.id, title="Renamed")

    assert list(memory_repo._row_locks) == [post.id]
