# services/battle/state.py
from __future__ import annotations

import time
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from services.battle.models import BattleState


class BattleStore(Protocol):
    async def load(self, battle_id: str) -> Optional[BattleState]: ...

    async def save(self, state: BattleState) -> None: ...

    async def delete(self, battle_id: str) -> None: ...

    async def purge_expired(self) -> List[str]: ...


class MemoryBattleStore:
    """
    In-process battle registry. Hands out copies, so callers only change
    a stored battle by saving it back. A battle not saved for `ttl_seconds`
    counts as abandoned and disappears (ttl 0 = keep forever).
    """

    def __init__(self, ttl_seconds: float = 0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._battles: Dict[str, Tuple[BattleState, float]] = {}

    def __len__(self) -> int:
        return len(self._battles)

    def _expired(self, touched_at: float) -> bool:
        return bool(self.ttl_seconds) and self._clock() - touched_at > self.ttl_seconds

    async def load(self, battle_id: str) -> Optional[BattleState]:
        entry = self._battles.get(battle_id)
        if entry is None:
            return None
        state, touched_at = entry
        if self._expired(touched_at):
            del self._battles[battle_id]
            return None
        return state.model_copy(deep=True)

    async def save(self, state: BattleState) -> None:
        self._battles[state.id] = (state.model_copy(deep=True), self._clock())

    async def delete(self, battle_id: str) -> None:
        self._battles.pop(battle_id, None)

    async def purge_expired(self) -> List[str]:
        expired = [bid for bid, (_, touched_at) in self._battles.items() if self._expired(touched_at)]
        for bid in expired:
            del self._battles[bid]
        return expired


def _battle_key(battle_id: str) -> str:
    return f"battle:{battle_id}"


class RedisBattleStore:
    """Battles as JSON in redis; expiry is left to redis (`ex=ttl`)."""

    def __init__(self, r, ttl_seconds: int = 0):
        self._r = r
        self.ttl_seconds = ttl_seconds

    async def load(self, battle_id: str) -> Optional[BattleState]:
        raw = await self._r.get(_battle_key(battle_id))
        return BattleState.model_validate_json(raw) if raw else None

    async def save(self, state: BattleState) -> None:
        await self._r.set(
            _battle_key(state.id),
            state.model_dump_json(by_alias=True),
            ex=self.ttl_seconds or None,
        )

    async def delete(self, battle_id: str) -> None:
        await self._r.delete(_battle_key(battle_id))

    async def purge_expired(self) -> List[str]:
        return []
