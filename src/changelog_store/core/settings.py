"""Application settings and configuration.

This module defines all configuration options for the changelog store.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Changelog Store", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./changelog.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Feed pagination (keyset cursor over published posts)
    feed_default_limit: int = Field(default=20, ge=1, alias="FEED_DEFAULT_LIMIT")
    feed_max_limit: int = Field(default=50, ge=1, alias="FEED_MAX_LIMIT")

    # Publisher list pagination (offset based)
    admin_default_limit: int = Field(default=20, ge=1, alias="ADMIN_DEFAULT_LIMIT")
    admin_max_limit: int = Field(default=100, ge=1, alias="ADMIN_MAX_LIMIT")
    admin_search_max_length: int = Field(default=120, ge=1, alias="ADMIN_SEARCH_MAX_LENGTH")

    # Slug generation
    slug_max_length: int = Field(default=80, ge=8, alias="SLUG_MAX_LENGTH")
    slug_probe_attempts: int = Field(default=100, ge=1, alias="SLUG_PROBE_ATTEMPTS")

    # Reader summaries
    excerpt_max_length: int = Field(default=220, ge=2, alias="EXCERPT_MAX_LENGTH")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
