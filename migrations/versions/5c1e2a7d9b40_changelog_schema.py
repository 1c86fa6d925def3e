"""changelog schema

Revision ID: 5c1e2a7d9b40
Revises:
Create Date: 2026-10-18 09:12:44.318205

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e2a7d9b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Case-insensitive match on any key, at any depth, that could carry post content.
_AUDIT_REDACTION_CHECK = """
NOT jsonb_path_exists(
    metadata::jsonb,
    '$.** ? (@.type() == "object").keyvalue() ? (@.key like_regex "^(body|body_markdown|bodymarkdown|markdown|content)$" flag "i")'
)
"""


def _enum(name: str, *values: str, length: int = 32) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=True, length=length)


def upgrade() -> None:
    """Create posts, read state and audit tables."""
    op.create_table(
        "changelog_posts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.Text(), nullable=True),
        sa.Column(
            "visibility",
            _enum("changelog_visibility", "authenticated", "public"),
            nullable=False,
        ),
        sa.Column("status", _enum("changelog_post_status", "draft", "published"), nullable=False),
        sa.Column(
            "category",
            _enum("changelog_post_category", "new", "improvement", "fix"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=180), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("body_markdown", sa.Text(), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_by_actor_id", sa.Text(), nullable=False),
        sa.Column("updated_by_actor_id", sa.Text(), nullable=False),
        sa.Column("revision", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "(status = 'draft' AND published_at IS NULL) OR "
            "(status = 'published' AND published_at IS NOT NULL)",
            name="changelog_posts_published_at_consistency",
        ),
        sa.CheckConstraint(
            "status <> 'published' OR "
            "(length(trim(title)) > 0 AND length(trim(body_markdown)) > 0)",
            name="changelog_posts_required_content_when_published",
        ),
        sa.CheckConstraint("revision >= 1", name="changelog_posts_revision_positive"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index(
        "idx_changelog_posts_tenant_status_visibility_published_at_id",
        "changelog_posts",
        ["tenant_id", "status", "visibility", "published_at", "id"],
    )
    op.create_index(
        "idx_changelog_posts_status_visibility_published_at_id",
        "changelog_posts",
        ["status", "visibility", "published_at", "id"],
    )

    op.create_table(
        "changelog_read_state",
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("tenant_id", "user_id"),
    )

    op.create_table(
        "changelog_audit_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.Text(), nullable=True),
        sa.Column("actor_id", sa.Text(), nullable=False),
        sa.Column(
            "action",
            _enum("changelog_audit_action", "create", "update", "publish", "unpublish", length=16),
            nullable=False,
        ),
        sa.Column("post_id", sa.String(length=36), nullable=True),
        sa.Column("at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_changelog_audit_log_post_id"),
        "changelog_audit_log",
        ["post_id"],
    )

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.create_check_constraint(
            "changelog_audit_log_metadata_redacted",
            "changelog_audit_log",
            sa.text(_AUDIT_REDACTION_CHECK),
        )


def downgrade() -> None:
    """Drop the changelog tables."""
    op.drop_index(op.f("ix_changelog_audit_log_post_id"), table_name="changelog_audit_log")
    op.drop_table("changelog_audit_log")
    op.drop_table("changelog_read_state")
    op.drop_index(
        "idx_changelog_posts_status_visibility_published_at_id",
        table_name="changelog_posts",
    )
    op.drop_index(
        "idx_changelog_posts_tenant_status_visibility_published_at_id",
        table_name="changelog_posts",
    )
    op.drop_table("changelog_posts")
