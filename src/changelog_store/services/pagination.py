"""Keyset pagination for the published feed.

Feed order is ``published_at DESC, id DESC``. The id only breaks ties between
equal timestamps, which makes the order total so walking page by page never
skips or repeats a post.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from changelog_store.db.time import ensure_utc
from changelog_store.domain import Cursor, FeedPage, Pagination
from changelog_store.errors import ValidationError
from changelog_store.models import Post

T = TypeVar("T")

MAX_CURSOR_LENGTH = 512
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]+$")
MAX_POST_ID_LENGTH = 36


def _invalid() -> ValidationError:
    return ValidationError("cursor is invalid", field="cursor")


def encode_cursor(position: Cursor | Post) -> str:
    """Serialize a feed position into an opaque base64url token."""
    cursor = position if isinstance(position, Cursor) else Cursor.from_post(position)
    payload = json.dumps(
        {"p": ensure_utc(cursor.published_at).isoformat(), "i": cursor.post_id},
        separators=(",", ":"),
    )
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> Cursor:
    """Parse a token produced by :func:`encode_cursor`.

    Raises:
        ValidationError: For anything that is not a well-formed cursor. There is
            no fallback to the first page.
    """
    if not isinstance(token, str) or not token or len(token) > MAX_CURSOR_LENGTH:
        raise _invalid()
    if not _TOKEN_RE.fullmatch(token):
        raise _invalid()

    padding = "=" * (-len(token) % 4)
    try:
        raw = base64.urlsafe_b64decode(token + padding)
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as err:
        raise _invalid() from err

    if not isinstance(payload, dict) or set(payload) != {"p", "i"}:
        raise _invalid()
    published_raw, post_id = payload["p"], payload["i"]
    if not isinstance(published_raw, str) or not isinstance(post_id, str):
        raise _invalid()
    if not post_id or len(post_id) > MAX_POST_ID_LENGTH:
        raise _invalid()

    try:
        published_at = datetime.fromisoformat(published_raw)
    except ValueError as err:
        raise _invalid() from err
    if published_at.tzinfo is None:
        raise _invalid()

    return Cursor(published_at=published_at, post_id=post_id)


class FeedPaginator:
    """Clamps page sizes and turns repository slices into feed pages."""

    def __init__(
        self,
        *,
        default_limit: int = 20,
        max_limit: int = 50,
        admin_default_limit: int = 20,
        admin_max_limit: int = 100,
    ) -> None:
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.admin_default_limit = admin_default_limit
        self.admin_max_limit = admin_max_limit

    @staticmethod
    def _clamp(limit: int | None, default: int, maximum: int) -> int:
        if limit is None:
            return min(default, maximum)
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError("limit must be a positive integer", field="limit")
        return min(limit, maximum)

    def clamp_limit(self, limit: int | None) -> int:
        return self._clamp(limit, self.default_limit, self.max_limit)

    def admin_pagination(self, limit: int | None, offset: int | None = None) -> Pagination:
        """Validate offset pagination for the publisher list."""
        clamped = self._clamp(limit, self.admin_default_limit, self.admin_max_limit)
        if offset is None:
            offset = 0
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise ValidationError("offset must be a non-negative integer", field="offset")
        return Pagination(limit=clamped, offset=offset)

    @staticmethod
    def parse_cursor(cursor: str | Cursor | None) -> Cursor | None:
        if cursor is None or isinstance(cursor, Cursor):
            return cursor
        return decode_cursor(cursor)

    def next_page(
        self,
        fetch: Callable[[Cursor | None, int], list[Post]],
        *,
        cursor: str | Cursor | None = None,
        limit: int | None = None,
        transform: Callable[[Post], T],
    ) -> FeedPage[T]:
        """Fetch one page after ``cursor``.

        ``fetch(after, n)`` must return at most ``n`` posts in feed order that
        sort strictly after ``after``, filtered in the query itself. One extra
        row is requested so "has more" needs no separate count.
        """
        page_size = self.clamp_limit(limit)
        after = self.parse_cursor(cursor)
        rows = fetch(after, page_size + 1)
        has_more = len(rows) > page_size
        visible = rows[:page_size]
        next_cursor = encode_cursor(visible[-1]) if has_more and visible else None
        return FeedPage(
            items=[transform(row) for row in visible],
            limit=page_size,
            next_cursor=next_cursor,
        )
