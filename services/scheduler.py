# services/scheduler.py
from __future__ import annotations

import asyncio
from typing import List

from loguru import logger

from services.battle.service import BattleService

_tasks: List[asyncio.Task] = []


# ────────────────────────────────────────────────────────────────────
# Loops
# ────────────────────────────────────────────────────────────────────

async def expired_battles_cleanup_loop(service: BattleService, interval: float) -> None:
    """
    Every `interval` seconds drops battles nobody touched for longer
    than the store's TTL.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            await service.purge_expired()
        except Exception as e:
            logger.exception("battle cleanup failed: {}", e)


# ────────────────────────────────────────────────────────────────────
# Entry points
# ────────────────────────────────────────────────────────────────────

def run_all_schedulers(service: BattleService, *, cleanup_interval: float) -> None:
    """
    Starts every background loop. Call from the app startup hook.
    """
    if cleanup_interval > 0:
        _tasks.append(asyncio.create_task(expired_battles_cleanup_loop(service, cleanup_interval)))
    logger.info("Schedulers started: battle cleanup every {}s.", cleanup_interval)


async def stop_all_schedulers() -> None:
    for task in _tasks:
        task.cancel()
    await asyncio.gather(*_tasks, return_exceptions=True)
    _tasks.clear()
