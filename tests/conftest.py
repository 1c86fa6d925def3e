# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite://")

from changelog_store.api.v1.dependencies import get_content_store
from changelog_store.core.settings import Settings
from changelog_store.db import Base, build_engine, create_tables, drop_tables
from changelog_store.domain import TenantScope
from changelog_store.main import app as fastapi_app
from changelog_store.repositories import InMemoryPostRepository, SqlAlchemyPostRepository
from changelog_store.repositories.base import PostRepository
from changelog_store.services import TenantScopedContentStore

TEST_DB_URL = "sqlite://"
EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Deterministic clock that moves forward by ``step`` on every read."""

    def __init__(self, start: datetime = EPOCH, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = build_engine(TEST_DB_URL)
    create_tables(engine)
    try:
        yield engine
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    factory = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        # Each test sees a clean database; the repository commits for real.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(params=["memory", "sqlalchemy"])
def repository(
    request: pytest.FixtureRequest,
    session_factory: sessionmaker[Session],
) -> PostRepository:
    """Run store tests against both repository implementations."""
    if request.param == "memory":
        return InMemoryPostRepository()
    return SqlAlchemyPostRepository(session_factory)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def frozen_clock() -> FakeClock:
    return FakeClock(step=timedelta(0))


@pytest.fixture()
def id_generator() -> Callable[[], str]:
    counter = count(1)
    return lambda: f"post-{next(counter):04d}"


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return Settings()


@pytest.fixture()
def store(
    repository: PostRepository,
    clock: FakeClock,
    id_generator: Callable[[], str],
    test_settings: Settings,
) -> TenantScopedContentStore:
    return TenantScopedContentStore(
        repository,
        clock=clock,
        id_generator=id_generator,
        config=test_settings,
    )


@pytest.fixture()
def tenant_a() -> TenantScope:
    return TenantScope("tenant-a")


@pytest.fixture()
def tenant_b() -> TenantScope:
    return TenantScope("tenant-b")


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def api_store(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
    id_generator: Callable[[], str],
    test_settings: Settings,
) -> TenantScopedContentStore:
    return TenantScopedContentStore(
        SqlAlchemyPostRepository(session_factory),
        clock=clock,
        id_generator=id_generator,
        config=test_settings,
    )


@pytest.fixture()
def client(app: FastAPI, api_store: TenantScopedContentStore) -> Iterator[TestClient]:
    app.dependency_overrides[get_content_store] = lambda: api_store
    try:
        with TestClient(app, base_url="http://test") as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_content_store, None)


@pytest.fixture()
def headers_a() -> dict[str, str]:
    return {"X-Tenant-Id": "tenant-a", "X-User-Id": "editor-1"}


@pytest.fixture()
def headers_b() -> dict[str, str]:
    return {"X-Tenant-Id": "tenant-b", "X-User-Id": "editor-2"}
