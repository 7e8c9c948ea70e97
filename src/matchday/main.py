"""Runtime wiring for embedding Matchday in a host service.

The host (web layer, worker, script) calls ``create_runtime`` once at
startup and opens a session per request:

    runtime = await create_runtime()
    async with runtime.session() as manager:
        await manager.start_season(season_id)

Season locks taken inside the block are held until the transaction ends,
and lifecycle events reach ``runtime.event_bus`` only after it commits.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncEngine

from matchday.config import Settings
from matchday.core.event_bus import EventBus
from matchday.core.locks import SeasonLocks, default_locks
from matchday.core.manager import SeasonManager
from matchday.db.engine import create_engine, create_tables, get_session
from matchday.db.repository import Repository

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.matchday_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@dataclass
class Runtime:
    settings: Settings
    engine: AsyncEngine
    event_bus: EventBus = field(default_factory=EventBus)
    locks: SeasonLocks = field(default_factory=default_locks)

    @asynccontextmanager
    async def session(self, *season_ids: str) -> AsyncGenerator[SeasonManager, None]:
        """One transaction: commits when the block exits cleanly, rolls back otherwise.

        ``season_ids`` are locked before the block runs, in sorted order; a
        block that works on several seasons should name them here.  Locks are
        released after the commit or rollback, then queued events are
        published, and only if the commit succeeded.
        """
        manager: SeasonManager | None = None
        try:
            async with get_session(self.engine) as session:
                manager = SeasonManager(
                    Repository(session), self.settings, self.event_bus, self.locks
                )
                await manager.claim(*season_ids)
                yield manager
        finally:
            if manager is not None:
                manager.release()
        await manager.flush_events()

    async def close(self) -> None:
        await self.engine.dispose()


async def create_runtime(settings: Settings | None = None) -> Runtime:
    """Configure logging, create the engine, and make sure tables exist."""
    settings = settings or Settings()
    configure_logging(settings)
    engine = create_engine(settings.database_url)
    await create_tables(engine)
    logger.info("matchday_started env=%s", settings.matchday_env)
    return Runtime(settings=settings, engine=engine)
