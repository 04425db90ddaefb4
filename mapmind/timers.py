from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Iterable
from typing import Any

logger = logging.getLogger(__name__)


class TimerRegistry:
    """Owns every background task a session schedules (countdown, streamers, consumers).

    Tasks drop out of the registry when they finish. `cancel_all()` is the
    teardown path: after it returns nothing the session started is still running.
    """

    def __init__(self, *, owner: str) -> None:
        self.owner = owner
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def closed(self) -> bool:
        return self._closed

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        if self._closed:
            coro.close()
            raise RuntimeError(f"Timer registry for {self.owner} is closed")

        task = asyncio.create_task(coro, name=f"{self.owner}:{name}")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("task %s failed", task.get_name(), exc_info=exc)

    async def cancel(self, tasks: Iterable[asyncio.Task[Any]]) -> None:
        """Cancel the given tasks and wait until they have actually stopped."""

        current = asyncio.current_task()
        pending = [t for t in tasks if not t.done() and t is not current]
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def cancel_all(self) -> None:
        self._closed = True
        await self.cancel(list(self._tasks))
