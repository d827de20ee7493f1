# models/trainer.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PokemonDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    level: Optional[int] = 1
    types: List[str] = Field(default_factory=list)
    image_url: Optional[str] = Field(None, alias="imageUrl")
    user_id: int = Field(alias="userId")


class UserDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    username: str
    discord_id: str = Field(alias="discordId")
    avatar: Optional[str] = None
    trainer_level: int = Field(1, alias="trainerLevel")
    pokecoins: int = 0
    pokemon_caught: int = Field(0, alias="pokemonCaught")
    battle_wins: int = Field(0, alias="battleWins")
    tournament_wins: int = Field(0, alias="tournamentWins")
    team: List[PokemonDTO] = Field(default_factory=list)


class ActivityCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    description: str
    timestamp: str
    user_id: int = Field(alias="userId")


class ActivityDTO(ActivityCreate):
    id: int
