"""Shared test fixtures."""

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from matchday.config import Settings
from matchday.db.engine import create_engine, create_tables, get_session
from matchday.db.repository import Repository


@pytest.fixture
def settings() -> Settings:
    """Test settings with defaults."""
    return Settings(matchday_env="test", database_url="sqlite+aiosqlite:///:memory:")


@pytest.fixture
async def engine() -> AsyncEngine:
    """Create an in-memory SQLite engine with all tables."""
    eng = create_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(eng)
    yield eng  # type: ignore[misc]
    await eng.dispose()


@pytest.fixture
async def repo(engine: AsyncEngine) -> Repository:
    """Yield a repository with a session bound to the in-memory database."""
    async with get_session(engine) as session:
        yield Repository(session)  # type: ignore[misc]
