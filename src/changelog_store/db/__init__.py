# src/changelog_store/db/__init__.py
"""Database configuration and utilities."""

from .session import Base, SessionLocal, build_engine, create_tables, drop_tables

__all__ = ["Base", "SessionLocal", "build_engine", "create_tables", "drop_tables"]
