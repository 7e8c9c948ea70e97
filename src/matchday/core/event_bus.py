"""In-process event bus for season and game notifications.

The season manager queues one envelope per lifecycle change and hands them
to the bus only after its transaction commits, so handlers never see a
change that was rolled back.  Envelopes look like::

    {"type": "game.status_changed", "data": {"game_id": ..., ...}}

Hosts attach async handlers with ``on`` (a notifier, a feed printer, a
cache refresh) or stream envelopes through a bounded queue with ``listen``
(an SSE endpoint, a test).
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)

Envelope = dict[str, Any]
Handler = Callable[[Envelope], Awaitable[None]]


class Topic(StrEnum):
    SEASON_STATUS_CHANGED = "season.status_changed"
    SCHEDULE_GENERATED = "season.schedule_generated"
    GAME_STATUS_CHANGED = "game.status_changed"
    GAME_EVENT_RECORDED = "game.event_recorded"


class EventBus:
    """Handlers keyed by topic; a ``None`` topic receives everything.

    Usage:
        bus = EventBus()
        bus.on(Topic.GAME_STATUS_CHANGED, announce)

        async with bus.listen(Topic.SEASON_STATUS_CHANGED) as queue:
            envelope = await queue.get()
    """

    def __init__(self) -> None:
        self._handlers: dict[Topic | None, list[Handler]] = defaultdict(list)

    def on(self, topic: Topic | None, handler: Handler) -> Callable[[], None]:
        """Attach ``handler``; returns a callable that detaches it again."""
        self._handlers[topic].append(handler)

        def off() -> None:
            if handler in self._handlers[topic]:
                self._handlers[topic].remove(handler)

        return off

    async def publish(self, topic: Topic, data: dict[str, Any]) -> int:
        """Run every matching handler in attach order. Returns how many succeeded.

        A failing handler is logged and skipped; the change it describes
        is already committed.
        """
        envelope: Envelope = {"type": str(topic), "data": data}
        delivered = 0
        for handler in [*self._handlers.get(topic, []), *self._handlers.get(None, [])]:
            try:
                await handler(envelope)
            except Exception:
                logger.exception("event_handler_failed type=%s", topic)
                continue
            delivered += 1
        return delivered

    @asynccontextmanager
    async def listen(
        self, topic: Topic | None = None, max_size: int = 100
    ) -> AsyncIterator[asyncio.Queue[Envelope]]:
        """Yield a queue that fills with matching envelopes until the block exits.

        When the queue is full, new envelopes are dropped with a warning.
        """
        queue: asyncio.Queue[Envelope] = asyncio.Queue(maxsize=max_size)

        async def enqueue(envelope: Envelope) -> None:
            try:
                queue.put_nowait(envelope)
            except asyncio.QueueFull:
                logger.warning("event_dropped type=%s reason=queue_full", envelope["type"])

        off = self.on(topic, enqueue)
        try:
            yield queue
        finally:
            off()

    @property
    def handler_count(self) -> int:
        return sum(len(handlers) for handlers in self._handlers.values())
