# src/changelog_store/models/audit_log.py
"""Append-only record of publisher actions on posts."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from changelog_store.core.redaction import contains_forbidden_key
from changelog_store.db.session import Base
from changelog_store.db.time import UTCDateTime


class AuditAction(StrEnum):
    """Mutations that produce an audit row."""

    CREATE = "create"
    UPDATE = "update"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"


class AuditLogEntry(Base):
    """One immutable audit row.

    The JSON column is named ``metadata`` in the database but exposed as
    ``metadata_`` to avoid shadowing ``DeclarativeBase.metadata``.
    """

    __tablename__ = "changelog_audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor_id: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[AuditAction] = mapped_column(
        Enum(
            AuditAction,
            name="changelog_audit_action",
            native_enum=False,
            create_constraint=True,
            length=16,
            values_callable=lambda members: [member.value for member in members],
            validate_strings=True,
        ),
        nullable=False,
    )
    post_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    @validates("metadata_")
    def _reject_content_keys(self, key: str, value: dict[str, Any] | None) -> dict[str, Any] | None:
        # Storage-boundary guard; the audit service should already have stripped these.
        if value is not None and contains_forbidden_key(value):
            raise ValueError("audit metadata must not contain post content fields")
        return value
