# services/battle/type_chart.py
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

SUPER_EFFECTIVE = 2.0
NOT_VERY_EFFECTIVE = 0.5
IMMUNE = 0.0
NEUTRAL = 1.0

ALL_TYPES = (
    "normal", "fire", "water", "electric", "grass", "ice",
    "fighting", "poison", "ground", "flying", "psychic", "bug",
    "rock", "ghost", "dragon", "dark", "steel", "fairy",
)

# attacking type -> (super effective against, not very effective against, no effect on)
_CHART_ROWS = {
    "normal": ((), ("rock", "steel"), ("ghost",)),
    "fire": (
        ("grass", "ice", "bug", "steel"),
        ("fire", "water", "rock", "dragon"),
        (),
    ),
    "water": (("fire", "ground", "rock"), ("water", "grass", "dragon"), ()),
    "electric": (("water", "flying"), ("electric", "grass", "dragon"), ("ground",)),
    "grass": (
        ("water", "ground", "rock"),
        ("fire", "grass", "poison", "flying", "bug", "dragon", "steel"),
        (),
    ),
    "ice": (
        ("grass", "ground", "flying", "dragon"),
        ("fire", "water", "ice", "steel"),
        (),
    ),
    "fighting": (
        ("normal", "ice", "rock", "dark", "steel"),
        ("poison", "flying", "psychic", "bug", "fairy"),
        ("ghost",),
    ),
    "poison": (("grass", "fairy"), ("poison", "ground", "rock", "ghost"), ("steel",)),
    "ground": (
        ("fire", "electric", "poison", "rock", "steel"),
        ("grass", "bug"),
        ("flying",),
    ),
    "flying": (("grass", "fighting", "bug"), ("electric", "rock", "steel"), ()),
    "psychic": (("fighting", "poison"), ("psychic", "steel"), ("dark",)),
    "bug": (
        ("grass", "psychic", "dark"),
        ("fire", "fighting", "poison", "flying", "ghost", "steel", "fairy"),
        (),
    ),
    "rock": (("fire", "ice", "flying", "bug"), ("fighting", "ground", "steel"), ()),
    "ghost": (("psychic", "ghost"), ("dark",), ("normal",)),
    "dragon": (("dragon",), ("steel",), ("fairy",)),
    "dark": (("psychic", "ghost"), ("fighting", "dark", "fairy"), ()),
    "steel": (("ice", "rock", "fairy"), ("fire", "water", "electric", "steel"), ()),
    "fairy": (("fighting", "dragon", "dark"), ("fire", "poison", "steel"), ()),
}


def _build_chart() -> Mapping[str, Mapping[str, float]]:
    chart = {}
    for attacking, (strong, weak, immune) in _CHART_ROWS.items():
        row = {}
        row.update({t: SUPER_EFFECTIVE for t in strong})
        row.update({t: NOT_VERY_EFFECTIVE for t in weak})
        row.update({t: IMMUNE for t in immune})
        chart[attacking] = MappingProxyType(row)
    return MappingProxyType(chart)


TYPE_CHART: Mapping[str, Mapping[str, float]] = _build_chart()


def matchup(move_type: str, defender_type: str) -> float:
    row = TYPE_CHART.get(move_type)
    if row is None:
        return NEUTRAL
    return row.get(defender_type, NEUTRAL)


def type_effectiveness(move_type: str, defender_types: Iterable[str]) -> float:
    """Multiplier of a move against a defender with one or two types. Any immunity zeroes it."""
    effectiveness = NEUTRAL
    for defender_type in defender_types:
        m = matchup(move_type, defender_type)
        if m == IMMUNE:
            return IMMUNE
        effectiveness *= m
    return effectiveness
