# tests/test_audit.py
"""Audit metadata must never carry post content."""

from datetime import UTC, datetime

import pytest

from changelog_store.models import AuditAction, AuditLogEntry
from changelog_store.services.audit import FORBIDDEN_KEYS, AuditTrail


class _RecordingTransaction:
    def __init__(self) -> None:
        self.entries: list[AuditLogEntry] = []

    def append_audit(self, entry: AuditLogEntry) -> None:
        self.entries.append(entry)


def test_forbidden_keys() -> None:
    assert FORBIDDEN_KEYS == {"body", "body_markdown", "bodymarkdown", "markdown", "content"}


def test_sanitize_strips_top_level_content() -> None:
    cleaned = AuditTrail.sanitize({"changed_fields": ["title"], "body_markdown": "secret"})
    assert cleaned == {"changed_fields": ["title"]}


def test_sanitize_is_case_insensitive_and_recursive() -> None:
    cleaned = AuditTrail.sanitize(
        {
            "diff": {"Content": "secret", "title": "ok"},
            "history": [{"Markdown": "secret"}, {"revision": 2}],
            "note": "kept",
        }
    )
    assert cleaned == {"diff": {"title": "ok"}, "history": [{"revision": 2}], "note": "kept"}


def test_sanitize_collapses_to_none() -> None:
    assert AuditTrail.sanitize(None) is None
    assert AuditTrail.sanitize({}) is None
    assert AuditTrail.sanitize({"body": "secret", "nested": {"content": "secret"}}) is None


def test_sanitize_keeps_empty_lists_and_drops_non_json() -> None:
    cleaned = AuditTrail.sanitize({"changed_fields": [], "when": datetime.now(UTC), "count": 0})
    assert cleaned == {"changed_fields": [], "count": 0}


def test_append_writes_sanitized_entry() -> None:
    tx = _RecordingTransaction()
    at = datetime(2024, 5, 1, tzinfo=UTC)

    entry = AuditTrail().append(
        tx,
        tenant_id="tenant-a",
        actor_id="editor-1",
        action=AuditAction.UPDATE,
        post_id="post-0001",
        at=at,
        metadata={"changed_fields": ["body_markdown"], "body": "secret"},
    )

    assert tx.entries == [entry]
    assert entry.metadata_ == {"changed_fields": ["body_markdown"]}
    assert entry.action == AuditAction.UPDATE
    assert entry.at == at


def test_model_rejects_content_metadata() -> None:
    with pytest.raises(ValueError):
        AuditLogEntry(
            tenant_id="tenant-a",
            actor_id="editor-1",
            action=AuditAction.CREATE,
            post_id="post-0001",
            at=datetime(2024, 5, 1, tzinfo=UTC),
            metadata_={"payload": {"BODY": "secret"}},
        )
