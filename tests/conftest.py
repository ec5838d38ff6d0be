"""
Shared pytest fixtures and configuration for all tests.
"""

import os
from collections.abc import Generator
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
import strawberry

from repostit.auth.session import MemorySessionStore, Session


class FakeRedis:
    """Dict-backed stand-in for the handful of Redis commands the app uses."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: Any, ex: int | None = None) -> bool:
        self.data[key] = str(value)
        self.expiry[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def memory_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def session(memory_store: MemorySessionStore) -> Session:
    """An empty, logged-out request session."""
    return Session(memory_store)


def _make_info(
    session: Session | None = None, redis: Any = None, loaders: Any = None
) -> MagicMock:
    """Build a mock GraphQL info object whose request carries `session`."""
    info = MagicMock(spec=strawberry.Info)
    info.context = {
        "request": SimpleNamespace(state=SimpleNamespace(session=session)),
        "loaders": loaders,
        "redis": redis,
    }
    return info


def _make_context(session: Session, redis: Any) -> dict[str, Any]:
    """Build a real execution context for `schema.execute`."""
    from repostit.graphql.loaders import Loaders

    return {
        "request": SimpleNamespace(state=SimpleNamespace(session=session)),
        "loaders": Loaders(),
        "redis": redis,
    }


@pytest.fixture
def make_info():
    return _make_info


@pytest.fixture
def make_context():
    return _make_context


@pytest_asyncio.fixture(scope="function")
async def sqlite_db(tmp_path) -> Any:
    """Initialize the shared engine on a fresh SQLite file with all tables."""
    from repostit.database.connection import (
        create_all,
        get_async_engine,
        init_database,
        reset_database,
    )

    url = f"sqlite:///{tmp_path / 'test.db'}"
    os.environ["REPOSTIT_DATABASE_URL"] = url
    init_database(url, force_reinit=True)
    await create_all()

    yield url

    await get_async_engine().dispose()
    reset_database()


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


# Test markers
def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line(  # type: ignore[reportUnknownMemberType]
        "markers", "requires_db: mark test as requiring database connection"
    )
    config.addinivalue_line("markers", "slow: mark test as slow running")  # type: ignore[reportUnknownMemberType]
    config.addinivalue_line("markers", "integration: mark test as integration test")  # type: ignore[reportUnknownMemberType]
    config.addinivalue_line("markers", "unit: mark test as unit test")  # type: ignore[reportUnknownMemberType]
