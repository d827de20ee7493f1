from __future__ import annotations

import itertools
from typing import Dict, List, Optional

import pytest

from core.errors import DataFetchError
from models.dashboard import EventDTO
from models.trainer import ActivityCreate, ActivityDTO, PokemonDTO, UserDTO
from services.battle.dice import BattleDice
from services.battle.models import BattleMove, BattlePokemon
from services.battle.service import BattleService
from services.battle.state import MemoryBattleStore
from services.pokeapi import MoveData, MoveRef, SpeciesData

API = "https://pokeapi.test/api/v2"


# ─────────────────────────────────────────────
# fakes
# ─────────────────────────────────────────────
class FixedDice(BattleDice):
    """Dice with every roll pinned; tweak attributes per test."""

    def __init__(self):
        super().__init__()
        self.accuracy = 0.0
        self.critical = False
        self.variance_value = 0.85
        self.flee = True
        self.level_offset = 0
        self.species = 19

    def accuracy_roll(self) -> float:
        return self.accuracy

    def is_critical(self) -> bool:
        return self.critical

    def variance(self) -> float:
        return self.variance_value

    def flee_succeeds(self) -> bool:
        return self.flee

    def opponent_level_offset(self) -> int:
        return self.level_offset

    def opponent_species_id(self) -> int:
        return self.species

    def sample_indices(self, pool_size: int, count: int) -> list[int]:
        return list(range(count))

    def choice(self, items):
        return items[0]


class ManualScheduler:
    def __init__(self):
        self.jobs = []

    def schedule(self, delay, job) -> None:
        self.jobs.append((delay, job))

    async def run_pending(self) -> None:
        while self.jobs:
            _, job = self.jobs.pop(0)
            await job()


class FakeStorage:
    def __init__(self):
        self.users: Dict[int, UserDTO] = {}
        self.pokemon: Dict[int, PokemonDTO] = {}
        self.teams: Dict[int, List[int]] = {}
        self.activities: List[ActivityDTO] = []
        self.fail_activity = False
        self.fail_create_user = False
        self.events: List[EventDTO] = []

    def add_user(self, user_id: int, discord_id: str = "1000") -> UserDTO:
        user = UserDTO(id=user_id, username=f"trainer{user_id}", discord_id=discord_id)
        self.users[user_id] = user
        self.teams.setdefault(user_id, [])
        return user

    def add_pokemon(self, pokemon_id: int, name: str, user_id: int, level: Optional[int] = 10, in_team: bool = True) -> PokemonDTO:
        p = PokemonDTO(id=pokemon_id, name=name, level=level, types=[], user_id=user_id)
        self.pokemon[pokemon_id] = p
        if in_team:
            self.teams.setdefault(user_id, []).append(pokemon_id)
        return p

    async def get_user(self, user_id: int) -> Optional[UserDTO]:
        return self.users.get(user_id)

    async def get_user_by_discord_id(self, discord_id: str) -> Optional[UserDTO]:
        return next((u for u in self.users.values() if u.discord_id == discord_id), None)

    async def get_user_by_username(self, username: str) -> Optional[UserDTO]:
        return next((u for u in self.users.values() if u.username == username), None)

    async def create_user(self, username: str, discord_id: str, avatar: Optional[str] = None) -> UserDTO:
        if self.fail_create_user:
            raise RuntimeError("database is down")
        if await self.get_user_by_username(username) or await self.get_user_by_discord_id(discord_id):
            raise ValueError("duplicate user")
        user = self.add_user(max(self.users, default=0) + 1, discord_id=discord_id)
        user.username = username
        user.avatar = avatar
        return user

    async def get_upcoming_events(self) -> List[EventDTO]:
        return sorted(self.events, key=lambda e: e.date)

    async def get_user_team(self, user_id: int) -> List[PokemonDTO]:
        return [self.pokemon[pid] for pid in self.teams.get(user_id, [])]

    async def get_pokemon_by_id(self, pokemon_id: int) -> Optional[PokemonDTO]:
        return self.pokemon.get(pokemon_id)

    async def create_activity(self, activity: ActivityCreate) -> ActivityDTO:
        if self.fail_activity:
            raise RuntimeError("database is down")
        dto = ActivityDTO(id=len(self.activities) + 1, **activity.model_dump())
        self.activities.append(dto)
        return dto

    async def get_recent_activities(self, user_id: Optional[int] = None, limit: int = 10) -> List[ActivityDTO]:
        rows = [a for a in self.activities if user_id is None or a.user_id == user_id]
        return list(reversed(rows))[:limit]


def move_data(move_id: int, name: str, type_: str, power: Optional[int], pp: int, accuracy: Optional[int] = 100) -> MoveData:
    return MoveData(id=move_id, name=name, power=power, pp=pp, accuracy=accuracy, type=type_, damage_class="physical")


def move_url(move_id: int) -> str:
    return f"{API}/move/{move_id}/"


def species_data(species_id: int, name: str, types: List[str], hp: Optional[int], moves: List[MoveData]) -> SpeciesData:
    return SpeciesData(
        id=species_id,
        name=name,
        types=types,
        sprite_front=f"https://img.test/{species_id}.png",
        sprite_back=f"https://img.test/back/{species_id}.png",
        base_stats={"hp": hp, "attack": 50} if hp is not None else {"attack": 50},
        move_pool=[MoveRef(name=m.name, url=move_url(m.id)) for m in moves],
    )


class FakeProvider:
    """Pikachu (#25) and Rattata (#19) with their moves, served from memory."""

    def __init__(self):
        self.calls: List[str] = []
        self.moves: Dict[str, MoveData] = {}
        self.species: Dict[str, SpeciesData] = {}
        self.failing_moves: set[str] = set()

        self.add(25, "pikachu", ["electric"], 35, [
            move_data(84, "thunder-shock", "electric", 40, 30),
            move_data(98, "quick-attack", "normal", 40, 30),
            move_data(45, "growl", "normal", None, 40, None),
            move_data(39, "tail-whip", "normal", None, 30),
        ])
        self.add(19, "rattata", ["normal"], 30, [
            move_data(33, "tackle", "normal", 40, 35),
            move_data(39, "tail-whip", "normal", None, 30),
        ])

    def add(self, species_id: int, name: str, types: List[str], hp: Optional[int], moves: List[MoveData]) -> SpeciesData:
        species = species_data(species_id, name, types, hp, moves)
        self.species[name] = species
        self.species[str(species_id)] = species
        for m in moves:
            self.moves[move_url(m.id)] = m
        return species

    async def fetch_species(self, id_or_name) -> SpeciesData:
        key = str(id_or_name).lower()
        self.calls.append(f"species:{key}")
        if key not in self.species:
            raise DataFetchError(f"Failed to fetch Pokemon data for {key}")
        return self.species[key]

    async def fetch_move(self, ref) -> MoveData:
        url = ref.url if isinstance(ref, MoveRef) else str(ref)
        self.calls.append(f"move:{url}")
        if url in self.failing_moves or url not in self.moves:
            raise DataFetchError(f"Failed to fetch move data for {url}")
        return self.moves[url]


# ─────────────────────────────────────────────
# fixtures
# ─────────────────────────────────────────────
@pytest.fixture
def dice() -> FixedDice:
    return FixedDice()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def storage() -> FakeStorage:
    s = FakeStorage()
    s.add_user(1, discord_id="111")
    s.add_pokemon(7, "Pikachu", user_id=1, level=10)
    s.add_user(2, discord_id="222")
    s.add_pokemon(8, "Pikachu", user_id=2, level=10)
    return s


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def store() -> MemoryBattleStore:
    return MemoryBattleStore()


@pytest.fixture
def service(storage, provider, store, dice, scheduler) -> BattleService:
    ticks = itertools.count(1_700_000_000)
    return BattleService(
        storage,
        provider,
        store,
        dice=dice,
        scheduler=scheduler,
        clock=lambda: float(next(ticks)),
        opponent_delay=0,
    )


@pytest.fixture
def make_move():
    def _make(type_: str = "normal", power: int = 40, pp: int = 10, accuracy: int = 100, name: str = "Tackle") -> BattleMove:
        return BattleMove(id=1, name=name, power=power, pp=pp, current_pp=pp, accuracy=accuracy, type=type_)

    return _make


@pytest.fixture
def make_pokemon():
    def _make(name: str = "Mon", level: int = 50, types=("normal",), hp: int = 100, moves=()) -> BattlePokemon:
        return BattlePokemon(
            id=1,
            name=name,
            level=level,
            types=list(types),
            current_hp=hp,
            max_hp=hp,
            moves=list(moves),
        )

    return _make
