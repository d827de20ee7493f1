# services/battle/repo.py
from __future__ import annotations

from core.errors import NotFoundError
from models.trainer import PokemonDTO, UserDTO
from services.storage import Storage


async def load_user(storage: Storage, user_id: int) -> UserDTO:
    user = await storage.get_user(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def load_owned_pokemon(storage: Storage, user_id: int, pokemon_id: int) -> PokemonDTO:
    """
    The pokemon a user sends into battle: it must exist and sit in
    that user's team.
    """
    pokemon = await storage.get_pokemon_by_id(pokemon_id)
    if not pokemon:
        raise NotFoundError("Pokemon not found")

    team = await storage.get_user_team(user_id)
    if not any(p.id == pokemon.id for p in team):
        raise NotFoundError("This Pokemon is not in your team")

    return pokemon
