# src/changelog_store/models/read_state.py
"""Per-(tenant, user) watermark used to answer unread queries."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from changelog_store.db.session import Base
from changelog_store.db.time import UTCDateTime


class ReadState(Base):
    """Last time a user acknowledged the changelog within a tenant."""

    __tablename__ = "changelog_read_state"

    tenant_id: Mapped[str] = mapped_column(Text, primary_key=True)
    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    # Always server-assigned.
    last_seen_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
