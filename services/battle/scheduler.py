# services/battle/scheduler.py
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Protocol, Set

from loguru import logger

Job = Callable[[], Awaitable[None]]


class TurnScheduler(Protocol):
    def schedule(self, delay: float, job: Job) -> None: ...


class AsyncioTurnScheduler:
    """Runs deferred battle jobs (the opponent's reply) as background tasks."""

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, delay: float, job: Job) -> None:
        task = asyncio.create_task(self._run(delay, job))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, delay: float, job: Job) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        try:
            await job()
        except Exception:
            logger.exception("battle scheduler: deferred job failed")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
