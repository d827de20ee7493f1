# routers/battle.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from loguru import logger

from core.errors import NotFoundError
from services.battle.deps import get_battle_service, user_id_from_header
from services.battle.models import BattleEndResponse, BattleState
from services.battle.service import BattleService

router = APIRouter(prefix="/battles", tags=["battle"])


async def _own_battle(service: BattleService, battle_id: str, user_id: int) -> BattleState:
    state = await service.get_battle_state(battle_id)
    if state is None or state.user_id != user_id:
        raise NotFoundError("Battle not found")
    return state


# ===========================
# BATTLE START
# ===========================
@router.post("/start/{pokemon_id}", response_model=BattleState, status_code=201)
async def battle_start(
    pokemon_id: int,
    user_id: int = Depends(user_id_from_header),
    service: BattleService = Depends(get_battle_service),
) -> BattleState:
    logger.info("battle api: start user={} pokemon={}", user_id, pokemon_id)
    return await service.start_battle(user_id, pokemon_id)


# ===========================
# STATE
# ===========================
@router.get("/{battle_id}", response_model=BattleState)
async def battle_state(
    battle_id: str,
    user_id: int = Depends(user_id_from_header),
    service: BattleService = Depends(get_battle_service),
) -> BattleState:
    return await _own_battle(service, battle_id, user_id)


# ===========================
# MOVE
# ===========================
@router.post("/{battle_id}/move/{move_index}", response_model=BattleState)
async def battle_move(
    battle_id: str,
    move_index: int,
    user_id: int = Depends(user_id_from_header),
    service: BattleService = Depends(get_battle_service),
) -> BattleState:
    await _own_battle(service, battle_id, user_id)
    return await service.execute_move(battle_id, move_index)


# ===========================
# FLEE
# ===========================
@router.post("/{battle_id}/flee", response_model=BattleState)
async def battle_flee(
    battle_id: str,
    user_id: int = Depends(user_id_from_header),
    service: BattleService = Depends(get_battle_service),
) -> BattleState:
    await _own_battle(service, battle_id, user_id)
    return await service.flee(battle_id)


# ===========================
# END
# ===========================
@router.post("/{battle_id}/end", response_model=BattleEndResponse)
async def battle_end(
    battle_id: str,
    user_id: int = Depends(user_id_from_header),
    service: BattleService = Depends(get_battle_service),
) -> BattleEndResponse:
    state = await service.get_battle_state(battle_id)
    if state is not None and state.user_id != user_id:
        raise NotFoundError("Battle not found")
    await service.end_battle(battle_id)
    return BattleEndResponse(id=battle_id)
