# src/changelog_store/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .admin import router as admin_router
from .whats_new import router as whats_new_router

__all__ = [
    "admin_router",
    "whats_new_router",
]
