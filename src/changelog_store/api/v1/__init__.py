# src/changelog_store/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import admin_router, whats_new_router

__all__ = [
    "admin_router",
    "whats_new_router",
]
