# tests/test_pagination.py
"""Keyset cursor encoding and feed page walking."""

from __future__ import annotations

import base64
import json
from datetime import UTC, datetime, timedelta, timezone
from itertools import count

import pytest

from changelog_store.domain import Cursor
from changelog_store.errors import ValidationError
from changelog_store.services import TenantScopedContentStore
from changelog_store.services.pagination import FeedPaginator, decode_cursor, encode_cursor


def _token(payload: object) -> str:
    raw = json.dumps(payload).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def test_cursor_round_trip() -> None:
    cursor = Cursor(published_at=datetime(2024, 3, 1, 9, 30, 15, 123456, tzinfo=UTC), post_id="post-0042")
    token = encode_cursor(cursor)

    assert "=" not in token
    assert decode_cursor(token) == cursor


def test_cursor_round_trip_accepts_any_short_id() -> None:
    cursor = Cursor(published_at=datetime(2024, 1, 1, tzinfo=UTC), post_id="post:0001")

    assert decode_cursor(encode_cursor(cursor)) == cursor


def test_cursor_normalizes_offsets_to_utc() -> None:
    local = datetime(2024, 3, 1, 11, 0, tzinfo=timezone(timedelta(hours=2)))
    decoded = decode_cursor(encode_cursor(Cursor(published_at=local, post_id="abc")))

    assert decoded.published_at == local
    assert decoded.published_at.utcoffset() == timedelta(0)


@pytest.mark.parametrize(
    "token",
    [
        "",
        "not a token",
        "%%%",
        "x" * 600,
        base64.urlsafe_b64encode(b"\xff\xfe").decode().rstrip("="),
        _token("just a string"),
        _token(["2024-01-01T00:00:00+00:00", "post-1"]),
        _token({"p": "2024-01-01T00:00:00+00:00"}),
        _token({"p": "2024-01-01T00:00:00+00:00", "i": "post-1", "x": 1}),
        _token({"p": "2024-01-01T00:00:00", "i": "post-1"}),
        _token({"p": "yesterday", "i": "post-1"}),
        _token({"p": 1704067200, "i": "post-1"}),
        _token({"p": "2024-01-01T00:00:00+00:00", "i": "p" * 37}),
        _token({"p": "2024-01-01T00:00:00+00:00", "i": ""}),
    ],
)
def test_decode_rejects_garbage(token: str) -> None:
    with pytest.raises(ValidationError) as exc:
        decode_cursor(token)
    assert exc.value.field == "cursor"


def test_limit_clamping() -> None:
    paginator = FeedPaginator(default_limit=20, max_limit=50)

    assert paginator.clamp_limit(None) == 20
    assert paginator.clamp_limit(7) == 7
    assert paginator.clamp_limit(500) == 50
    for bad in (0, -3, True, "10"):
        with pytest.raises(ValidationError):
            paginator.clamp_limit(bad)


def test_admin_pagination_defaults() -> None:
    paginator = FeedPaginator(admin_default_limit=20, admin_max_limit=100)

    page = paginator.admin_pagination(None)
    assert (page.limit, page.offset) == (20, 0)
    assert paginator.admin_pagination(1000, 40).limit == 100


def test_invalid_cursor_is_not_treated_as_first_page(store, tenant_a) -> None:
    store.publish_post("editor-1", tenant_a, store.create_post(
        "editor-1", tenant_a, title="Only", category="new", body_markdown="b"
    ).id)

    with pytest.raises(ValidationError):
        store.list_published(tenant_a, cursor="garbage!")


@pytest.mark.parametrize("page_size", [1, 2, 3, 7, 10])
def test_walking_pages_returns_every_post_once(
    repository, frozen_clock, id_generator, test_settings, tenant_a, page_size
) -> None:
    # A frozen clock makes every published_at equal, so only the id orders the feed.
    store = TenantScopedContentStore(
        repository,
        clock=frozen_clock,
        id_generator=id_generator,
        config=test_settings,
    )
    published = []
    for n in range(7):
        post = store.create_post(
            "editor-1", tenant_a, title=f"Post {n}", category="fix", body_markdown="body"
        )
        published.append(store.publish_post("editor-1", tenant_a, post.id).id)
    store.create_post("editor-1", tenant_a, title="Draft", category="fix", body_markdown="")

    seen: list[str] = []
    cursor = None
    pages = 0
    while True:
        page = store.list_published(tenant_a, cursor=cursor, limit=page_size)
        seen.extend(item.id for item in page.items)
        pages += 1
        if page.next_cursor is None:
            break
        cursor = page.next_cursor

    assert seen == sorted(published, reverse=True)
    assert pages == -(-len(published) // page_size)


def test_pages_stay_stable_when_newer_posts_arrive(store, tenant_a) -> None:
    ids = []
    for n in range(4):
        post = store.create_post(
            "editor-1", tenant_a, title=f"Post {n}", category="new", body_markdown="body"
        )
        ids.append(store.publish_post("editor-1", tenant_a, post.id).id)

    first = store.list_published(tenant_a, limit=2)
    fresh = store.create_post("editor-1", tenant_a, title="Fresh", category="new", body_markdown="b")
    store.publish_post("editor-1", tenant_a, fresh.id)
    second = store.list_published(tenant_a, cursor=first.next_cursor, limit=2)

    assert [item.id for item in first.items] == [ids[3], ids[2]]
    assert [item.id for item in second.items] == [ids[1], ids[0]]
    assert second.next_cursor is None


def test_feed_walks_past_first_page_with_colon_ids(repository, clock, test_settings, tenant_a) -> None:
    counter = count(1)
    store = TenantScopedContentStore(
        repository,
        clock=clock,
        id_generator=lambda: f"post:{next(counter):04d}",
        config=test_settings,
    )
    ids = []
    for n in range(3):
        post = store.create_post(
            "editor-1", tenant_a, title=f"Post {n}", category="new", body_markdown="body"
        )
        ids.append(store.publish_post("editor-1", tenant_a, post.id).id)

    first = store.list_published(tenant_a, limit=2)
    second = store.list_published(tenant_a, cursor=first.next_cursor, limit=2)

    assert [item.id for item in first.items] == ["post:0003", "post:0002"]
    assert [item.id for item in second.items] == ["post:0001"]
    assert second.next_cursor is None
