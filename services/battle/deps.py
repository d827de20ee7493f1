# services/battle/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException

from config import settings
from services.battle.service import BattleService
from services.battle.state import BattleStore, MemoryBattleStore, RedisBattleStore
from services.pokeapi import PokeApiClient
from services.redis_manager import get_redis
from services.storage import PgStorage, Storage

_storage: Optional[Storage] = None
_service: Optional[BattleService] = None
_provider: Optional[PokeApiClient] = None


def user_id_from_header(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> int:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id")

    try:
        user_id = int(x_user_id.strip())
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id")

    if user_id <= 0:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id")
    return user_id


async def _build_store() -> BattleStore:
    if settings.battle_store == "redis":
        return RedisBattleStore(await get_redis(), ttl_seconds=settings.battle_ttl_seconds)
    return MemoryBattleStore(ttl_seconds=settings.battle_ttl_seconds)


async def init_battle_service() -> BattleService:
    global _storage, _service, _provider
    if _service is None:
        _storage = PgStorage()
        _provider = PokeApiClient()
        _service = BattleService(_storage, _provider, await _build_store())
    return _service


async def close_battle_service() -> None:
    global _service, _provider
    if _service is not None:
        await _service.scheduler.shutdown()
        _service = None
    if _provider is not None:
        await _provider.aclose()
        _provider = None


def get_battle_service() -> BattleService:
    if _service is None:
        raise HTTPException(status_code=503, detail="BATTLES_NOT_READY")
    return _service


def get_storage() -> Storage:
    if _storage is None:
        raise HTTPException(status_code=503, detail="STORAGE_NOT_READY")
    return _storage
