# services/battle/models.py
from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class BattleStatus(str, Enum):
    ACTIVE = "active"
    USER_WON = "userWon"
    OPPONENT_WON = "opponentWon"
    FLED = "fled"


class BattleMove(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    power: int = 40
    pp: int
    current_pp: int = Field(alias="currentPp")
    accuracy: int = 100
    type: str
    damage_class: str = Field("physical", alias="damageClass")

    @property
    def usable(self) -> bool:
        return self.current_pp > 0


class BattlePokemon(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    level: int = Field(ge=1)
    types: List[str]
    current_hp: int = Field(ge=0, alias="currentHp")
    max_hp: int = Field(ge=0, alias="maxHp")
    image_url_front: str | None = Field(None, alias="imageUrlFront")
    image_url_back: str | None = Field(None, alias="imageUrlBack")
    moves: List[BattleMove] = Field(default_factory=list)

    @property
    def fainted(self) -> bool:
        return self.current_hp <= 0

    def take_damage(self, amount: int) -> None:
        self.current_hp = max(0, self.current_hp - amount)


class BattleState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: int = Field(alias="userId")
    user_pokemon: BattlePokemon = Field(alias="userPokemon")
    opponent_pokemon: BattlePokemon = Field(alias="opponentPokemon")
    is_user_turn: bool = Field(True, alias="isUserTurn")
    messages: List[str] = Field(default_factory=list)
    battle_status: BattleStatus = Field(BattleStatus.ACTIVE, alias="battleStatus")
    turn_count: int = Field(0, alias="turnCount")

    @property
    def is_active(self) -> bool:
        return self.battle_status == BattleStatus.ACTIVE

    def log(self, message: str) -> None:
        self.messages.append(message)


class BattleEndResponse(BaseModel):
    ok: bool = True
    id: str
