# services/redis_manager.py
from __future__ import annotations

from typing import Optional

import redis.asyncio as redis
from loguru import logger

from config import settings

_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Shared client for the redis battle store, created on first use."""
    global _client
    if _client is not None:
        return _client

    if not settings.redis_url:
        raise RuntimeError("REDIS_URL is not set (BATTLE_STORE=redis)")

    _client = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    logger.info("redis: client created for battle store")
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
