# services/storage.py
from __future__ import annotations

from typing import List, Optional, Protocol

from db import get_pool
from models.dashboard import EventDTO
from models.trainer import ActivityCreate, ActivityDTO, PokemonDTO, UserDTO


class Storage(Protocol):
    async def get_user(self, user_id: int) -> Optional[UserDTO]: ...

    async def get_user_by_discord_id(self, discord_id: str) -> Optional[UserDTO]: ...

    async def get_user_by_username(self, username: str) -> Optional[UserDTO]: ...

    async def create_user(self, username: str, discord_id: str, avatar: Optional[str] = None) -> UserDTO: ...

    async def get_user_team(self, user_id: int) -> List[PokemonDTO]: ...

    async def get_pokemon_by_id(self, pokemon_id: int) -> Optional[PokemonDTO]: ...

    async def create_activity(self, activity: ActivityCreate) -> ActivityDTO: ...

    async def get_recent_activities(self, user_id: Optional[int] = None, limit: int = 10) -> List[ActivityDTO]: ...

    async def get_upcoming_events(self) -> List[EventDTO]: ...


def _pokemon_from_row(r) -> PokemonDTO:
    return PokemonDTO(
        id=int(r["id"]),
        name=r["name"],
        level=int(r["level"]) if r["level"] is not None else None,
        types=list(r["types"] or []),
        image_url=r["image_url"],
        user_id=int(r["user_id"]),
    )


def _activity_from_row(r) -> ActivityDTO:
    return ActivityDTO(
        id=int(r["id"]),
        type=r["type"],
        description=r["description"],
        timestamp=r["timestamp"],
        user_id=int(r["user_id"]),
    )


class PgStorage:
    """asyncpg-backed trainer storage (users, pokemon, teams, activities, events)."""

    _USER_COLUMNS = """
        id, username, discord_id, avatar,
        COALESCE(trainer_level, 1)   AS trainer_level,
        COALESCE(pokecoins, 0)       AS pokecoins,
        COALESCE(pokemon_caught, 0)  AS pokemon_caught,
        COALESCE(battle_wins, 0)     AS battle_wins,
        COALESCE(tournament_wins, 0) AS tournament_wins
    """

    async def _user_from_row(self, r) -> UserDTO:
        team = await self.get_user_team(int(r["id"]))
        return UserDTO(
            id=int(r["id"]),
            username=r["username"],
            discord_id=r["discord_id"],
            avatar=r["avatar"],
            trainer_level=int(r["trainer_level"]),
            pokecoins=int(r["pokecoins"]),
            pokemon_caught=int(r["pokemon_caught"]),
            battle_wins=int(r["battle_wins"]),
            tournament_wins=int(r["tournament_wins"]),
            team=team,
        )

    async def get_user(self, user_id: int) -> Optional[UserDTO]:
        pool = await get_pool()
        row = await pool.fetchrow(
            f"SELECT {self._USER_COLUMNS} FROM users WHERE id = $1",
            user_id,
        )
        return await self._user_from_row(row) if row else None

    async def get_user_by_discord_id(self, discord_id: str) -> Optional[UserDTO]:
        pool = await get_pool()
        row = await pool.fetchrow(
            f"SELECT {self._USER_COLUMNS} FROM users WHERE discord_id = $1",
            str(discord_id),
        )
        return await self._user_from_row(row) if row else None

    async def get_user_by_username(self, username: str) -> Optional[UserDTO]:
        pool = await get_pool()
        row = await pool.fetchrow(
            f"SELECT {self._USER_COLUMNS} FROM users WHERE username = $1",
            username,
        )
        return await self._user_from_row(row) if row else None

    async def create_user(self, username: str, discord_id: str, avatar: Optional[str] = None) -> UserDTO:
        pool = await get_pool()
        row = await pool.fetchrow(
            f"""
            INSERT INTO users (username, discord_id, avatar)
            VALUES ($1, $2, $3)
            RETURNING {self._USER_COLUMNS}
            """,
            username,
            str(discord_id),
            avatar,
        )
        return await self._user_from_row(row)

    async def get_user_team(self, user_id: int) -> List[PokemonDTO]:
        pool = await get_pool()
        rows = await pool.fetch(
            """
            SELECT p.id, p.name, p.level, p.types, p.image_url, p.user_id
            FROM user_teams t
            JOIN pokemon p ON p.id = t.pokemon_id
            WHERE t.user_id = $1
            ORDER BY t.position ASC, t.id ASC
            """,
            user_id,
        )
        return [_pokemon_from_row(r) for r in rows]

    async def get_pokemon_by_id(self, pokemon_id: int) -> Optional[PokemonDTO]:
        pool = await get_pool()
        row = await pool.fetchrow(
            "SELECT id, name, level, types, image_url, user_id FROM pokemon WHERE id = $1",
            pokemon_id,
        )
        return _pokemon_from_row(row) if row else None

    async def create_activity(self, activity: ActivityCreate) -> ActivityDTO:
        pool = await get_pool()
        row = await pool.fetchrow(
            """
            INSERT INTO activities (type, description, timestamp, user_id)
            VALUES ($1, $2, $3, $4)
            RETURNING id, type, description, timestamp, user_id
            """,
            activity.type,
            activity.description,
            activity.timestamp,
            activity.user_id,
        )
        return _activity_from_row(row)

    async def get_recent_activities(self, user_id: Optional[int] = None, limit: int = 10) -> List[ActivityDTO]:
        pool = await get_pool()
        rows = await pool.fetch(
            """
            SELECT id, type, description, timestamp, user_id
            FROM activities
            WHERE $1::int IS NULL OR user_id = $1
            ORDER BY id DESC
            LIMIT $2
            """,
            user_id,
            limit,
        )
        return [_activity_from_row(r) for r in rows]

    async def get_upcoming_events(self) -> List[EventDTO]:
        pool = await get_pool()
        rows = await pool.fetch(
            "SELECT id, title, description, date, time_remaining, color_class FROM events ORDER BY date ASC"
        )
        return [
            EventDTO(
                id=int(r["id"]),
                title=r["title"],
                description=r["description"],
                date=r["date"],
                time_remaining=r["time_remaining"],
                color_class=r["color_class"],
            )
            for r in rows
        ]
