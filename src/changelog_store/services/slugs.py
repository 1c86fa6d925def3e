"""URL slug generation and validation."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from changelog_store.errors import ConflictError
from changelog_store.services.validation import normalize_slug

if TYPE_CHECKING:
    from changelog_store.repositories.base import PostTransaction

logger = logging.getLogger(__name__)

FALLBACK_SLUG = "post"
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


class SlugResolver:
    """Turns titles and user input into globally unique slugs."""

    def __init__(self, *, max_length: int = 80, max_attempts: int = 100) -> None:
        self.max_length = max_length
        self.max_attempts = max_attempts

    def slugify(self, title: str) -> str:
        """Return a kebab-case slug for ``title``, or ``"post"`` if nothing usable remains."""
        slug = _NON_ALNUM_RE.sub("-", title.lower()).strip("-")
        slug = slug[: self.max_length].rstrip("-")
        return slug or FALLBACK_SLUG

    def _variant(self, base: str, attempt: int) -> str:
        if attempt == 1:
            return base
        suffix = f"-{attempt}"
        head = base[: max(self.max_length - len(suffix), 1)].rstrip("-") or FALLBACK_SLUG
        return f"{head}{suffix}"

    def resolve_explicit(self, candidate: str) -> str:
        """Validate a caller-supplied slug. Uniqueness is left to the insert."""
        return normalize_slug(candidate)

    def resolve_unique(self, tx: PostTransaction, candidate: str | None, title: str) -> str:
        """Return the slug for a new post.

        An explicit ``candidate`` is validated and returned as-is. Otherwise the
        title is slugified and ``base``, ``base-2``, ``base-3``... are probed
        inside ``tx`` until a free one is found. The table's unique constraint
        remains the final guard against concurrent inserts.

        Raises:
            ValidationError: If ``candidate`` is malformed.
            ConflictError: If every probed variant is taken.
        """
        if candidate is not None:
            return self.resolve_explicit(candidate)

        base = self.slugify(title)
        for attempt in range(1, self.max_attempts + 1):
            slug = self._variant(base, attempt)
            if not tx.slug_taken(slug):
                return slug

        logger.warning("Slug probe exhausted after %d attempts for base %r", self.max_attempts, base)
        raise ConflictError("unable to generate unique slug")
