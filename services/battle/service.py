# services/battle/service.py
from __future__ import annotations

import asyncio
import time
import weakref
from typing import Awaitable, Callable, List, Optional

from loguru import logger

from config import settings
from core.errors import (
    BattleEndedError,
    InvalidMoveError,
    NoPpError,
    NotFoundError,
    NotYourTurnError,
)
from services.battle.dice import BattleDice
from services.battle.engine import calc_damage
from services.battle.factory import DEFAULT_LEVEL, create_battle_pokemon
from services.battle.models import BattleMove, BattlePokemon, BattleState, BattleStatus
from services.battle.repo import load_owned_pokemon, load_user
from services.battle.rewards import record_battle_result
from services.battle.scheduler import AsyncioTurnScheduler, TurnScheduler
from services.battle.state import BattleStore
from services.battle.type_chart import IMMUNE, type_effectiveness
from services.pokeapi import DataProvider
from services.storage import Storage

MIN_OPPONENT_LEVEL = 5

Listener = Callable[[BattleState], Awaitable[None]]


class BattleService:
    """
    Wild battles: one user pokemon against one random first-generation
    opponent. The user always moves first; the opponent answers in a
    deferred job, so a response to the user's action never contains the
    opponent's reply.

    All changes to one battle run under that battle's lock, which lets the
    REST API and the Discord bot drive the same service.
    """

    def __init__(
        self,
        storage: Storage,
        provider: DataProvider,
        store: BattleStore,
        *,
        dice: Optional[BattleDice] = None,
        scheduler: Optional[TurnScheduler] = None,
        clock: Callable[[], float] = time.time,
        opponent_delay: Optional[float] = None,
    ):
        self.storage = storage
        self.provider = provider
        self.store = store
        self.dice = dice or BattleDice()
        self.scheduler = scheduler or AsyncioTurnScheduler()
        self.opponent_delay = settings.opponent_turn_delay if opponent_delay is None else opponent_delay
        self._clock = clock
        # a lock lives only while some call holds or waits on it
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self._listeners: List[Listener] = []

    # ===========================
    # INTERNALS
    # ===========================
    def _lock(self, battle_id: str) -> asyncio.Lock:
        lock = self._locks.get(battle_id)
        if lock is None:
            lock = self._locks[battle_id] = asyncio.Lock()
        return lock

    async def _load_active(self, battle_id: str) -> BattleState:
        state = await self.store.load(battle_id)
        if state is None:
            raise NotFoundError("Battle not found")
        if not state.is_active:
            raise BattleEndedError("Battle already ended")
        return state

    def _use_move(self, state: BattleState, attacker: BattlePokemon, defender: BattlePokemon, move: BattleMove) -> int:
        move.current_pp -= 1
        damage = calc_damage(attacker, defender, move, self.dice)
        defender.take_damage(damage)
        state.log(f"{attacker.name} used {move.name}!")

        if damage == 0:
            if type_effectiveness(move.type, defender.types) == IMMUNE:
                state.log(f"It doesn't affect {defender.name}...")
            else:
                state.log(f"{attacker.name}'s attack missed!")
        return damage

    def _hand_turn_to_opponent(self, state: BattleState) -> None:
        state.is_user_turn = False
        state.turn_count += 1
        self.scheduler.schedule(self.opponent_delay, lambda: self._opponent_turn(state.id))

    async def _finish(self, state: BattleState, status: BattleStatus) -> None:
        state.battle_status = status
        await self.store.save(state)
        logger.info("battle: finished id={} status={} turns={}", state.id, status.value, state.turn_count)
        await record_battle_result(self.storage, state)

    async def _notify(self, state: BattleState) -> None:
        for listener in list(self._listeners):
            try:
                await listener(state)
            except Exception:
                logger.exception("battle: listener FAILED battle={}", state.id)

    def add_listener(self, listener: Listener) -> None:
        """Called with the battle after every background opponent turn."""
        self._listeners.append(listener)

    # ===========================
    # START
    # ===========================
    async def start_battle(self, user_id: int, user_pokemon_id: int) -> BattleState:
        await load_user(self.storage, user_id)
        pokemon = await load_owned_pokemon(self.storage, user_id, user_pokemon_id)

        level = pokemon.level or DEFAULT_LEVEL
        opponent_level = max(MIN_OPPONENT_LEVEL, level + self.dice.opponent_level_offset())
        opponent_species_id = self.dice.opponent_species_id()

        user_species, opponent_species = await asyncio.gather(
            self.provider.fetch_species(pokemon.name.lower()),
            self.provider.fetch_species(opponent_species_id),
        )
        user_mon, opponent_mon = await asyncio.gather(
            create_battle_pokemon(user_species, level, self.provider, self.dice),
            create_battle_pokemon(opponent_species, opponent_level, self.provider, self.dice),
        )

        state = BattleState(
            id=f"battle_{user_id}_{int(self._clock() * 1000)}",
            user_id=user_id,
            user_pokemon=user_mon,
            opponent_pokemon=opponent_mon,
            is_user_turn=True,
            messages=[f"A wild {opponent_mon.name} appeared!"],
            battle_status=BattleStatus.ACTIVE,
            turn_count=0,
        )
        await self.store.save(state)

        logger.info(
            "battle: started id={} user={} {} Lv{} vs {} Lv{}",
            state.id,
            user_id,
            user_mon.name,
            user_mon.level,
            opponent_mon.name,
            opponent_mon.level,
        )
        return state

    # ===========================
    # USER MOVE
    # ===========================
    async def execute_move(self, battle_id: str, move_index: int) -> BattleState:
        async with self._lock(battle_id):
            state = await self._load_active(battle_id)

            if not state.is_user_turn:
                raise NotYourTurnError("Not your turn")

            moves = state.user_pokemon.moves
            if move_index < 0 or move_index >= len(moves):
                raise InvalidMoveError("Move not found")

            move = moves[move_index]
            if not move.usable:
                raise NoPpError(f"No PP left for {move.name}")

            self._use_move(state, state.user_pokemon, state.opponent_pokemon, move)

            if state.opponent_pokemon.fainted:
                state.log(f"{state.opponent_pokemon.name} fainted!")
                await self._finish(state, BattleStatus.USER_WON)
                return state

            self._hand_turn_to_opponent(state)
            await self.store.save(state)
            return state

    # ===========================
    # OPPONENT MOVE (deferred)
    # ===========================
    async def _opponent_turn(self, battle_id: str) -> None:
        async with self._lock(battle_id):
            state = await self.store.load(battle_id)
            # stale job: battle ended, was removed, or it is not the opponent's turn
            if state is None or not state.is_active or state.is_user_turn:
                return

            opponent = state.opponent_pokemon
            available = [m for m in opponent.moves if m.usable]

            if not available:
                state.log(f"{opponent.name} has no moves left!")
                state.is_user_turn = True
                await self.store.save(state)
            else:
                move = self.dice.choice(available)
                self._use_move(state, opponent, state.user_pokemon, move)

                if state.user_pokemon.fainted:
                    state.log(f"{state.user_pokemon.name} fainted!")
                    await self._finish(state, BattleStatus.OPPONENT_WON)
                else:
                    state.is_user_turn = True
                    state.turn_count += 1
                    await self.store.save(state)

        await self._notify(state)

    # ===========================
    # FLEE
    # ===========================
    async def flee(self, battle_id: str) -> BattleState:
        async with self._lock(battle_id):
            state = await self._load_active(battle_id)

            if self.dice.flee_succeeds():
                state.log("Got away safely!")
                state.battle_status = BattleStatus.FLED
                await self.store.save(state)
                logger.info("battle: fled id={} turns={}", state.id, state.turn_count)
                return state

            state.log("Couldn't escape!")
            self._hand_turn_to_opponent(state)
            await self.store.save(state)
            return state

    # ===========================
    # LOOKUP / CLEANUP
    # ===========================
    async def get_battle_state(self, battle_id: str) -> Optional[BattleState]:
        return await self.store.load(battle_id)

    async def end_battle(self, battle_id: str) -> None:
        async with self._lock(battle_id):
            await self.store.delete(battle_id)
        logger.info("battle: ended id={}", battle_id)

    async def purge_expired(self) -> List[str]:
        expired = await self.store.purge_expired()
        if expired:
            logger.info("battle: purged {} abandoned battles", len(expired))
        return expired
