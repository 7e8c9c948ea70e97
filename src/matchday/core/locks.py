"""Per-season mutual exclusion.

At most one mutating operation may be in flight per season, and standings
reads must never observe a regeneration halfway through its
delete-then-create.  A SeasonManager takes a season's lock through
``HeldLocks`` the first time it touches that season and keeps it until its
transaction has committed or rolled back, so a second transaction on the
same season only reads committed state.  Different seasons never block
each other.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager


class SeasonLocks:
    """A lazily created ``asyncio.Lock`` per season id."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, season_id: str) -> asyncio.Lock:
        lock = self._locks.get(season_id)
        if lock is None:
            lock = self._locks[season_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, season_id: str) -> AsyncIterator[None]:
        async with self.get(season_id):
            yield

    def discard(self, season_id: str) -> None:
        """Forget a deleted season's lock unless someone is holding it."""
        lock = self._locks.get(season_id)
        if lock is not None and not lock.locked():
            del self._locks[season_id]

    def __len__(self) -> int:
        return len(self._locks)


# Process-wide registry shared by every manager instance.
_default_locks = SeasonLocks()


def default_locks() -> SeasonLocks:
    return _default_locks


def season_lock(season_id: str) -> AbstractAsyncContextManager[None]:
    """Hold the process-wide lock for ``season_id``."""
    return _default_locks.hold(season_id)


class HeldLocks:
    """The season locks one transaction has taken, held until ``release``.

    The first ``hold`` for a season acquires its registry lock; later holds
    in the same transaction reuse it.  Coroutines sharing the transaction
    still take turns per season.
    """

    def __init__(self, registry: SeasonLocks) -> None:
        self.registry = registry
        self._held: dict[str, asyncio.Lock] = {}
        self._turns = SeasonLocks()

    @asynccontextmanager
    async def hold(self, season_id: str) -> AsyncIterator[None]:
        async with self._turns.hold(season_id):
            if season_id not in self._held:
                lock = self.registry.get(season_id)
                await lock.acquire()
                self._held[season_id] = lock
            yield

    async def claim(self, *season_ids: str) -> None:
        """Acquire several seasons up front, in sorted order."""
        for season_id in sorted(set(season_ids)):
            async with self.hold(season_id):
                pass

    def release(self) -> None:
        for lock in self._held.values():
            lock.release()
        self._held.clear()

    @property
    def season_ids(self) -> frozenset[str]:
        return frozenset(self._held)
