# services/battle/rewards.py
from __future__ import annotations

from datetime import datetime, timezone

from loguru import logger

from models.trainer import ActivityCreate
from services.battle.models import BattleState, BattleStatus
from services.storage import Storage

ACTIVITY_TYPE = "battle"


def result_description(state: BattleState) -> str | None:
    opponent = state.opponent_pokemon.name
    if state.battle_status == BattleStatus.USER_WON:
        return f"You won a battle against {opponent}!"
    if state.battle_status == BattleStatus.OPPONENT_WON:
        return f"You lost a battle against {opponent}."
    return None


async def record_battle_result(storage: Storage, state: BattleState) -> bool:
    """
    Writes the win/loss activity for a finished battle.
    Activity is telemetry: a failed write is logged, never raised.
    """
    description = result_description(state)
    if description is None:
        return False

    try:
        await storage.create_activity(
            ActivityCreate(
                type=ACTIVITY_TYPE,
                description=description,
                timestamp=datetime.now(timezone.utc).isoformat(),
                user_id=state.user_id,
            )
        )
    except Exception:
        logger.exception("battle: create_activity FAILED battle={} user={}", state.id, state.user_id)
        return False

    logger.info("battle: result recorded battle={} status={}", state.id, state.battle_status.value)
    return True
