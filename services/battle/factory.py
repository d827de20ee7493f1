# services/battle/factory.py
from __future__ import annotations

import asyncio
from typing import Optional

from services.battle.dice import BattleDice
from services.battle.models import BattleMove, BattlePokemon
from services.pokeapi import DataProvider, MoveData, SpeciesData

DEFAULT_LEVEL = 5
MAX_MOVES = 4
DEFAULT_POWER = 40
DEFAULT_ACCURACY = 100


def format_name(name: str) -> str:
    """'thunder-shock' -> 'Thunder Shock'"""
    return " ".join(part[:1].upper() + part[1:] for part in name.split("-"))


def calc_max_hp(base_hp: int, level: int) -> int:
    return (2 * base_hp * level) // 100 + level + 10


def to_battle_move(data: MoveData) -> BattleMove:
    return BattleMove(
        id=data.id,
        name=format_name(data.name),
        power=data.power or DEFAULT_POWER,
        pp=data.pp,
        current_pp=data.pp,
        accuracy=data.accuracy or DEFAULT_ACCURACY,
        type=data.type,
        damage_class=data.damage_class,
    )


async def create_battle_pokemon(
    species: SpeciesData,
    level: Optional[int],
    provider: DataProvider,
    dice: BattleDice,
) -> BattlePokemon:
    """
    Levels a species for battle and gives it up to four random moves.
    A failed move lookup raises DataFetchError for the whole pokemon.
    """
    level = level or DEFAULT_LEVEL

    pool = species.move_pool
    if len(pool) <= MAX_MOVES:
        picked = list(pool)
    else:
        picked = [pool[i] for i in dice.sample_indices(len(pool), MAX_MOVES)]

    moves_data = await asyncio.gather(*(provider.fetch_move(ref) for ref in picked))

    max_hp = calc_max_hp(species.stat("hp"), level)

    return BattlePokemon(
        id=species.id,
        name=format_name(species.name),
        level=level,
        types=list(species.types),
        current_hp=max_hp,
        max_hp=max_hp,
        image_url_front=species.sprite_front,
        image_url_back=species.sprite_back,
        moves=[to_battle_move(m) for m in moves_data],
    )
