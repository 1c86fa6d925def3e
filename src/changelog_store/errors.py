"""Error taxonomy raised by the content store.

The HTTP layer maps these onto transport codes; the store itself never
produces HTTP-specific values. "Not found" is not an error: store operations
return ``None`` so that posts owned by another tenant are indistinguishable
from posts that do not exist.
"""

from __future__ import annotations

__all__ = ["ConflictError", "StoreError", "ValidationError"]


class StoreError(Exception):
    """Base class for classified store failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(StoreError):
    """Malformed or out-of-range input. The caller can fix the request."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ConflictError(StoreError):
    """Revision mismatch, slug collision or invalid status transition.

    The caller must re-fetch the current state before retrying.
    """
