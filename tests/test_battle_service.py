import asyncio
import gc

import pytest

from core.errors import (
    BattleEndedError,
    DataFetchError,
    InvalidMoveError,
    NoPpError,
    NotFoundError,
    NotYourTurnError,
)
from services.battle.models import BattleStatus
from services.battle.scheduler import AsyncioTurnScheduler
from services.battle.service import BattleService
from services.battle.state import MemoryBattleStore


def run(coro):
    return asyncio.run(coro)


async def patch_state(store, battle_id, fn):
    state = await store.load(battle_id)
    fn(state)
    await store.save(state)


# ===========================
# START
# ===========================
def test_start_battle_builds_initial_state(service, provider):
    state = run(service.start_battle(1, 7))

    assert state.id == "battle_1_1700000000000"
    assert state.user_id == 1
    assert state.is_user_turn is True
    assert state.battle_status == BattleStatus.ACTIVE
    assert state.turn_count == 0
    assert state.messages == ["A wild Rattata appeared!"]
    assert state.user_pokemon.name == "Pikachu"
    assert state.user_pokemon.level == 10
    assert state.opponent_pokemon.level == 10
    assert "species:pikachu" in provider.calls
    assert "species:19" in provider.calls


def test_started_battle_is_stored(service, store):
    state = run(service.start_battle(1, 7))
    stored = run(service.get_battle_state(state.id))
    assert stored == state


def test_opponent_level_is_floored_at_five(service, storage, dice):
    storage.add_pokemon(9, "Pikachu", user_id=1, level=3)
    dice.level_offset = -2
    state = run(service.start_battle(1, 9))
    assert state.user_pokemon.level == 3
    assert state.opponent_pokemon.level == 5


def test_opponent_level_follows_offset(service, storage, dice):
    storage.add_pokemon(9, "Pikachu", user_id=1, level=30)
    dice.level_offset = 2
    state = run(service.start_battle(1, 9))
    assert state.opponent_pokemon.level == 32


def test_user_pokemon_without_level_battles_at_five(service, storage):
    storage.add_pokemon(9, "Pikachu", user_id=1, level=None)
    state = run(service.start_battle(1, 9))
    assert state.user_pokemon.level == 5


def test_start_unknown_user(service, provider):
    with pytest.raises(NotFoundError):
        run(service.start_battle(99, 7))
    assert provider.calls == []


def test_start_unknown_pokemon(service, provider):
    with pytest.raises(NotFoundError):
        run(service.start_battle(1, 12345))
    assert provider.calls == []


def test_start_with_pokemon_outside_team_fails_before_fetching(service, storage, provider):
    storage.add_pokemon(40, "Pikachu", user_id=1, in_team=False)
    with pytest.raises(NotFoundError):
        run(service.start_battle(1, 40))
    # someone else's pokemon
    with pytest.raises(NotFoundError):
        run(service.start_battle(1, 8))
    assert provider.calls == []


def test_failed_species_fetch_stores_nothing(service, store, dice):
    dice.species = 150
    with pytest.raises(DataFetchError):
        run(service.start_battle(1, 7))
    assert len(store) == 0


# ===========================
# MOVES
# ===========================
def test_user_move_then_opponent_reply(service, scheduler):
    async def scenario():
        state = await service.start_battle(1, 7)
        after_user = await service.execute_move(state.id, 0)

        assert after_user.opponent_pokemon.current_hp == 26 - 8
        assert after_user.user_pokemon.moves[0].current_pp == 29
        assert after_user.is_user_turn is False
        assert after_user.turn_count == 1
        assert after_user.messages[-1] == "Pikachu used Thunder Shock!"
        assert len(scheduler.jobs) == 1

        await scheduler.run_pending()
        after_opponent = await service.get_battle_state(state.id)

        assert after_opponent.user_pokemon.current_hp == 27 - 8
        assert after_opponent.opponent_pokemon.moves[0].current_pp == 34
        assert after_opponent.is_user_turn is True
        assert after_opponent.turn_count == 2
        assert after_opponent.messages == [
            "A wild Rattata appeared!",
            "Pikachu used Thunder Shock!",
            "Rattata used Tackle!",
        ]
        # the earlier response is not touched by the opponent's turn
        assert after_user.messages[-1] == "Pikachu used Thunder Shock!"

    run(scenario())


def test_move_on_missing_battle(service):
    with pytest.raises(NotFoundError):
        run(service.execute_move("battle_1_0", 0))


def test_move_out_of_turn(service):
    async def scenario():
        state = await service.start_battle(1, 7)
        await service.execute_move(state.id, 0)
        with pytest.raises(NotYourTurnError):
            await service.execute_move(state.id, 1)

    run(scenario())


@pytest.mark.parametrize("index", [-1, 4, 17])
def test_move_index_must_exist(service, index):
    async def scenario():
        state = await service.start_battle(1, 7)
        with pytest.raises(InvalidMoveError):
            await service.execute_move(state.id, index)
        stored = await service.get_battle_state(state.id)
        assert stored.is_user_turn is True
        assert stored.turn_count == 0

    run(scenario())


def test_empty_move_is_rejected_and_pp_never_goes_negative(service, store):
    async def scenario():
        state = await service.start_battle(1, 7)

        def drain(s):
            s.user_pokemon.moves[0].current_pp = 0

        await patch_state(store, state.id, drain)

        for _ in range(5):
            with pytest.raises(NoPpError) as exc:
                await service.execute_move(state.id, 0)
            assert isinstance(exc.value, InvalidMoveError)

        stored = await service.get_battle_state(state.id)
        assert stored.user_pokemon.moves[0].current_pp == 0
        assert stored.is_user_turn is True
        assert stored.messages == ["A wild Rattata appeared!"]

    run(scenario())


def test_miss_is_logged(service, dice):
    async def scenario():
        state = await service.start_battle(1, 7)
        dice.accuracy = 100.5
        after = await service.execute_move(state.id, 0)
        assert after.opponent_pokemon.current_hp == after.opponent_pokemon.max_hp
        assert after.messages[-2:] == ["Pikachu used Thunder Shock!", "Pikachu's attack missed!"]
        assert after.user_pokemon.moves[0].current_pp == 29

    run(scenario())


def test_knockout_wins_immediately(service, store, storage, scheduler):
    async def scenario():
        state = await service.start_battle(1, 7)
        await patch_state(store, state.id, lambda s: setattr(s.opponent_pokemon, "current_hp", 3))

        after = await service.execute_move(state.id, 0)

        assert after.opponent_pokemon.current_hp == 0
        assert after.battle_status == BattleStatus.USER_WON
        assert after.is_user_turn is True
        assert after.turn_count == 0
        assert after.messages[-1] == "Rattata fainted!"
        assert scheduler.jobs == []
        assert [a.description for a in storage.activities] == ["You won a battle against Rattata!"]
        assert storage.activities[0].type == "battle"
        assert storage.activities[0].user_id == 1

    run(scenario())


def test_failed_activity_write_does_not_fail_the_move(service, store, storage):
    async def scenario():
        storage.fail_activity = True
        state = await service.start_battle(1, 7)
        await patch_state(store, state.id, lambda s: setattr(s.opponent_pokemon, "current_hp", 1))
        after = await service.execute_move(state.id, 0)
        assert after.battle_status == BattleStatus.USER_WON
        assert (await service.get_battle_state(state.id)).battle_status == BattleStatus.USER_WON

    run(scenario())


def test_opponent_knockout_loses(service, store, storage, scheduler):
    async def scenario():
        state = await service.start_battle(1, 7)
        await patch_state(store, state.id, lambda s: setattr(s.user_pokemon, "current_hp", 2))

        await service.execute_move(state.id, 0)
        await scheduler.run_pending()
        after = await service.get_battle_state(state.id)

        assert after.user_pokemon.current_hp == 0
        assert after.battle_status == BattleStatus.OPPONENT_WON
        assert after.messages[-2:] == ["Rattata used Tackle!", "Pikachu fainted!"]
        assert after.turn_count == 1
        assert [a.description for a in storage.activities] == ["You lost a battle against Rattata."]

    run(scenario())


def test_opponent_without_pp_hands_the_turn_back(service, store, scheduler):
    async def scenario():
        state = await service.start_battle(1, 7)

        def drain(s):
            for m in s.opponent_pokemon.moves:
                m.current_pp = 0

        await patch_state(store, state.id, drain)
        await service.execute_move(state.id, 0)
        await scheduler.run_pending()
        after = await service.get_battle_state(state.id)

        assert after.messages[-1] == "Rattata has no moves left!"
        assert after.is_user_turn is True
        assert after.turn_count == 1
        assert after.user_pokemon.current_hp == after.user_pokemon.max_hp

    run(scenario())


def test_opponent_picks_only_moves_with_pp(service, store, scheduler):
    async def scenario():
        state = await service.start_battle(1, 7)
        await patch_state(store, state.id, lambda s: setattr(s.opponent_pokemon.moves[0], "current_pp", 0))
        await service.execute_move(state.id, 0)
        await scheduler.run_pending()
        after = await service.get_battle_state(state.id)
        assert after.messages[-1] == "Rattata used Tail Whip!"
        assert after.opponent_pokemon.moves[0].current_pp == 0
        assert after.opponent_pokemon.moves[1].current_pp == 29

    run(scenario())


def test_stale_opponent_job_is_a_no_op(service, scheduler):
    async def scenario():
        state = await service.start_battle(1, 7)
        await service.execute_move(state.id, 0)
        await service.end_battle(state.id)
        await scheduler.run_pending()
        assert await service.get_battle_state(state.id) is None

    run(scenario())


def test_listeners_see_opponent_turns(service, scheduler):
    seen = []

    async def listener(state):
        seen.append((state.id, state.is_user_turn, state.turn_count))

    async def broken(state):
        raise RuntimeError("listener bug")

    service.add_listener(broken)
    service.add_listener(listener)

    async def scenario():
        state = await service.start_battle(1, 7)
        await service.execute_move(state.id, 0)
        assert seen == []
        await scheduler.run_pending()
        assert seen == [(state.id, True, 2)]

    run(scenario())


# ===========================
# FLEE
# ===========================
def test_flee_always_succeeding(service, scheduler):
    async def scenario():
        for _ in range(1000):
            state = await service.start_battle(1, 7)
            after = await service.flee(state.id)
            assert after.battle_status == BattleStatus.FLED
            assert after.messages[-1] == "Got away safely!"
            assert not any(" used " in m for m in after.messages)
        assert scheduler.jobs == []

    run(scenario())


def test_failed_flee_gives_opponent_a_free_turn(service, scheduler, dice):
    async def scenario():
        dice.flee = False
        state = await service.start_battle(1, 7)
        after = await service.flee(state.id)

        assert after.battle_status == BattleStatus.ACTIVE
        assert after.messages[-1] == "Couldn't escape!"
        assert after.is_user_turn is False
        assert after.turn_count == 1

        await scheduler.run_pending()
        after = await service.get_battle_state(state.id)
        assert after.messages[-1] == "Rattata used Tackle!"
        assert after.is_user_turn is True
        assert after.turn_count == 2
        assert after.opponent_pokemon.current_hp == after.opponent_pokemon.max_hp

    run(scenario())


def test_flee_on_missing_battle(service):
    with pytest.raises(NotFoundError):
        run(service.flee("nope"))


def test_finished_battles_stay_finished(service):
    async def scenario():
        state = await service.start_battle(1, 7)
        await service.flee(state.id)
        for _ in range(3):
            with pytest.raises(BattleEndedError):
                await service.execute_move(state.id, 0)
            with pytest.raises(BattleEndedError):
                await service.flee(state.id)
        after = await service.get_battle_state(state.id)
        assert after.battle_status == BattleStatus.FLED

    run(scenario())


# ===========================
# END / LIFECYCLE
# ===========================
def test_end_battle_is_idempotent(service):
    async def scenario():
        state = await service.start_battle(1, 7)
        await service.end_battle(state.id)
        await service.end_battle(state.id)
        await service.end_battle("never-existed")
        assert await service.get_battle_state(state.id) is None

    run(scenario())


def test_finished_battle_stays_readable_until_ended(service):
    async def scenario():
        state = await service.start_battle(1, 7)
        await service.flee(state.id)
        assert (await service.get_battle_state(state.id)).battle_status == BattleStatus.FLED
        await service.end_battle(state.id)
        assert await service.get_battle_state(state.id) is None

    run(scenario())


def test_concurrent_moves_on_one_battle_are_serialized(service):
    async def scenario():
        state = await service.start_battle(1, 7)
        results = await asyncio.gather(
            service.execute_move(state.id, 0),
            service.execute_move(state.id, 1),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], NotYourTurnError)
        stored = await service.get_battle_state(state.id)
        assert stored.turn_count == 1

    run(scenario())


def test_purge_expired_drops_idle_battles(storage, provider, dice, scheduler):
    now = [1000.0]
    store = MemoryBattleStore(ttl_seconds=60, clock=lambda: now[0])
    service = BattleService(storage, provider, store, dice=dice, scheduler=scheduler, opponent_delay=0)

    async def scenario():
        state = await service.start_battle(1, 7)
        now[0] += 30
        assert await service.purge_expired() == []
        now[0] += 31
        assert await service.purge_expired() == [state.id]
        assert await service.get_battle_state(state.id) is None

    run(scenario())


def test_real_scheduler_defers_the_opponent(storage, provider, dice):
    async def scenario():
        scheduler = AsyncioTurnScheduler()
        service = BattleService(storage, provider, MemoryBattleStore(), dice=dice, scheduler=scheduler, opponent_delay=0)
        state = await service.start_battle(1, 7)

        after_user = await service.execute_move(state.id, 0)
        assert after_user.is_user_turn is False
        assert not any("Rattata used" in m for m in after_user.messages)

        for _ in range(50):
            await asyncio.sleep(0.01)
            current = await service.get_battle_state(state.id)
            if current.is_user_turn:
                break

        assert current.is_user_turn is True
        assert current.messages[-1] == "Rattata used Tackle!"
        assert scheduler.pending == 0
        await scheduler.shutdown()

    run(scenario())


def test_ending_a_battle_before_the_opponent_moves_leaves_no_lock(service, scheduler):
    async def scenario():
        state = await service.start_battle(1, 7)
        await service.execute_move(state.id, 0)
        await service.end_battle(state.id)
        await scheduler.run_pending()

    run(scenario())
    gc.collect()
    assert len(service._locks) == 0


def test_unknown_battle_ids_leave_no_locks(service):
    async def scenario():
        for i in range(100):
            with pytest.raises(NotFoundError):
                await service.execute_move(f"nope_{i}", 0)
            with pytest.raises(NotFoundError):
                await service.flee(f"nope_{i}")
            await service.end_battle(f"nope_{i}")

    run(scenario())
    gc.collect()
    assert len(service._locks) == 0


def test_waiters_share_one_lock_while_a_battle_is_busy(service):
    async def scenario():
        state = await service.start_battle(1, 7)
        lock = service._lock(state.id)
        async with lock:
            assert service._lock(state.id) is lock
            pending = asyncio.ensure_future(service.execute_move(state.id, 0))
            await asyncio.sleep(0)
            assert not pending.done()
        after = await pending
        assert after.turn_count == 1

    run(scenario())
