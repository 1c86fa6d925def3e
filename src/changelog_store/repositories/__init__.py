# src/changelog_store/repositories/__init__.py
"""Persistence backends for changelog posts."""

from .base import PostRepository, PostTransaction
from .memory_repo import InMemoryPostRepository
from .sqlalchemy_repo import SqlAlchemyPostRepository

__all__ = [
    "InMemoryPostRepository",
    "PostRepository",
    "PostTransaction",
    "SqlAlchemyPostRepository",
]
