"""In-process fan-out of snapshot changes to open WebSocket streams."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any

_CLOSED = object()


class Subscription:
    """Queue registered on the bus from construction until ``close``.

    Events published after ``subscribe`` returns are kept even if iteration
    starts later.
    """

    def __init__(self, queues: set[asyncio.Queue[Any]]):
        self._queues = queues
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._queues.add(self._queue)

    def close(self) -> None:
        self._queues.discard(self._queue)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> dict[str, Any]:
        event = await self._queue.get()
        if event is _CLOSED:
            self.close()
            raise StopAsyncIteration
        return event


class EventBus:
    def __init__(self) -> None:
        self._queues: dict[str, set[asyncio.Queue[Any]]] = defaultdict(set)

    def subscriber_count(self, channel: str) -> int:
        return len(self._queues.get(channel, ()))

    def subscribe(self, channel: str) -> Subscription:
        return Subscription(self._queues[channel])

    async def publish(self, channel: str, event: dict[str, Any]) -> int:
        queues = list(self._queues.get(channel, ()))
        for queue in queues:
            queue.put_nowait(event)
        return len(queues)

    async def close(self, channel: str) -> None:
        # ends every open subscription so streams finish on shutdown
        for queue in list(self._queues.get(channel, ())):
            queue.put_nowait(_CLOSED)
