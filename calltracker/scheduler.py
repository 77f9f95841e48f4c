"""Fire-and-forget deferred actions on the running event loop.

Nothing is persisted and nothing is cancelled once scheduled, except for
leftovers at application shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[None]]


class Scheduler(Protocol):
    def schedule(self, delay_ms: int, action: Action, *, name: str | None = None) -> object: ...


class TaskScheduler:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, delay_ms: int, action: Action, *, name: str | None = None) -> asyncio.Task:
        task = asyncio.create_task(self._run(max(0, delay_ms), action, name), name=name)
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Scheduled %s in %d ms", name or "task", delay_ms)
        return task

    async def _run(self, delay_ms: int, action: Action, name: str | None) -> None:
        if delay_ms:
            await asyncio.sleep(delay_ms / 1000)
        try:
            await action()
        except Exception:
            logger.exception("Scheduled task %s failed", name or "task")

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d pending scheduled task(s)", len(tasks))
