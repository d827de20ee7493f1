# services/battle/engine.py
from __future__ import annotations

import math

from services.battle.dice import CRIT_MULT, BattleDice
from services.battle.models import BattleMove, BattlePokemon
from services.battle.type_chart import IMMUNE, type_effectiveness

STAB_MULT = 1.5


def proxy_stat(level: int) -> int:
    # Flat approximation shared by attack and defense.
    return 50 + level * 2


def base_damage(attacker_level: int, power: int, attack: float, defense: float) -> float:
    return ((2 * attacker_level / 5 + 2) * power * (attack / defense)) / 50 + 2


def stab_multiplier(attacker: BattlePokemon, move: BattleMove) -> float:
    return STAB_MULT if move.type in attacker.types else 1.0


def calc_damage(attacker: BattlePokemon, defender: BattlePokemon, move: BattleMove, dice: BattleDice) -> int:
    """
    Simplified main-series damage formula.

    Returns 0 on a miss or when the defender is immune to the move's type,
    otherwise at least 1.
    """
    if dice.accuracy_roll() > move.accuracy:
        return 0

    effectiveness = type_effectiveness(move.type, defender.types)
    if effectiveness == IMMUNE:
        return 0

    critical = CRIT_MULT if dice.is_critical() else 1.0
    stab = stab_multiplier(attacker, move)
    variance = dice.variance()

    base = base_damage(
        attacker.level,
        move.power,
        proxy_stat(attacker.level),
        proxy_stat(defender.level),
    )
    damage = math.floor(base * critical * effectiveness * stab * variance)
    return max(1, damage)
