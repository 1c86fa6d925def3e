"""Alembic environment for the changelog store schema."""
from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path
from typing import Any

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import make_url

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from changelog_store.core.settings import settings  # noqa: E402
from changelog_store.db.session import Base  # noqa: E402

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)


def _database_url() -> str:
    """ALEMBIC_URL, then alembic.ini, then the application settings."""
    return (
        os.getenv("ALEMBIC_URL")
        or config.get_main_option("sqlalchemy.url")
        or settings.database_url_sync
    )


def _options(dialect: str) -> dict[str, Any]:
    # SQLite cannot ALTER most constraints in place; batch mode copies the table.
    return {
        "target_metadata": Base.metadata,
        "compare_type": True,
        "render_as_batch": dialect == "sqlite",
    }


def migrate_offline(url: str) -> None:
    """Print the migration SQL instead of executing it."""
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_options(make_url(url).get_backend_name()),
    )
    with context.begin_transaction():
        context.run_migrations()


def migrate_online(url: str) -> None:
    section = dict(config.get_section(config.config_ini_section) or {})
    section["sqlalchemy.url"] = url
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **_options(connection.dialect.name))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    migrate_offline(_database_url())
else:
    migrate_online(_database_url())
