from __future__ import annotations

import asyncio
import copy
import itertools
import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crawler.content import ContentLibrary
from crawler.engine import GameEngine
from crawler.saves import (
    AutoSaveService,
    FileSaveStorage,
    LoadResult,
    MemorySaveStorage,
    SaveResult,
    SaveSystem,
)
from crawler.state import GameState


@pytest.fixture(scope="module")
def library() -> ContentLibrary:
    return ContentLibrary.load_default()


@pytest.fixture()
def game(library: ContentLibrary) -> GameState:
    engine = GameEngine(library, seed=7, clock=lambda: 0.0)
    state = engine.start_new_game(room_budget=8)
    return engine.process_command(state, "wait")


def _ticker():
    counter = itertools.count(1)
    return lambda: float(next(counter))


def test_save_and_load_round_trip(game: GameState) -> None:
    async def scenario():
        system = SaveSystem(MemorySaveStorage(), clock=lambda: 1700000000.0)
        saved = await system.save(game, 1, "Before the stairs")
        loaded = await system.load(1)
        return saved, loaded

    saved, loaded = asyncio.run(scenario())

    assert saved.ok
    assert saved.message == "Game saved successfully to slot 1."
    metadata = saved.save_data.metadata
    assert metadata.name == "Before the stairs"
    assert metadata.play_time == game.turn_count * 30
    assert metadata.dungeon_seed == game.dungeon.seed

    assert loaded.ok
    restored = loaded.state
    assert restored.character.to_dict() == game.character.to_dict()
    assert restored.current_room_id == game.current_room_id
    assert restored.turn_count == game.turn_count
    assert restored.rng_state == game.rng_state
    assert [message.text for message in restored.message_log] == [message.text for message in game.message_log]
    for room in game.dungeon:
        twin = restored.dungeon.get_room(room.id)
        assert twin.exits == room.exits
        assert {d: lock.to_dict() for d, lock in twin.locked_exits.items()} == {
            d: lock.to_dict() for d, lock in room.locked_exits.items()
        }


def test_auto_save_slot_is_locked_for_manual_saves(game: GameState) -> None:
    async def scenario():
        system = SaveSystem(MemorySaveStorage())
        return await system.save(game, 0), await system.save(game, 9)

    locked, invalid = asyncio.run(scenario())
    assert locked.result == SaveResult.SLOT_LOCKED
    assert invalid.result == SaveResult.INVALID_DATA


def test_load_reports_missing_corrupt_and_old_saves(game: GameState) -> None:
    async def scenario():
        storage = MemorySaveStorage()
        system = SaveSystem(storage)
        await system.save(game, 1)
        raw = json.loads(await storage.read("dungeon_crawler_save_1"))
        raw["version"] = "0.9.0"
        await storage.write("dungeon_crawler_save_2", json.dumps(raw))
        await storage.write("dungeon_crawler_save_3", "{not json")
        return [await system.load(slot) for slot in (2, 3, 4)]

    old, corrupt, missing = asyncio.run(scenario())
    assert old.result == LoadResult.VERSION_MISMATCH
    assert corrupt.result == LoadResult.CORRUPTED
    assert corrupt.message == "Save data is corrupted or invalid."
    assert missing.result == LoadResult.NOT_FOUND
    assert missing.state is None


def test_unreadable_exit_maps_load_as_empty(game: GameState) -> None:
    async def scenario():
        storage = MemorySaveStorage()
        system = SaveSystem(storage)
        await system.save(game, 1)
        raw = json.loads(await storage.read("dungeon_crawler_save_1"))
        for entry in raw["game_state"]["dungeon"]["rooms"]:
            if entry[0] == game.current_room_id:
                entry[1]["exits"] = 5
        await storage.write("dungeon_crawler_save_1", json.dumps(raw))
        return await system.load(1)

    loaded = asyncio.run(scenario())
    assert loaded.ok
    assert loaded.state.current_room.exits == {}


def _break_first_room_contents(raw):
    raw["game_state"]["dungeon"]["rooms"][0][1]["contents"] = ["not", "a", "mapping"]


def _break_enemy_entries(raw):
    raw["game_state"]["dungeon"]["rooms"][0][1]["contents"]["enemies"] = ["rat"]


def _break_coordinates(raw):
    raw["game_state"]["dungeon"]["rooms"][0][1]["coordinates"] = "ab"


def _break_character_hp(raw):
    raw["game_state"]["character"]["hp"] = [10, 10]


def _break_inventory(raw):
    raw["game_state"]["character"]["inventory"] = "longsword"


def _break_metadata(raw):
    raw["metadata"] = "slot one"


@pytest.mark.parametrize(
    "damage",
    [
        _break_first_room_contents,
        _break_enemy_entries,
        _break_coordinates,
        _break_character_hp,
        _break_inventory,
        _break_metadata,
    ],
)
def test_misshapen_sections_load_as_corrupted(game: GameState, damage) -> None:
    async def scenario():
        storage = MemorySaveStorage()
        system = SaveSystem(storage)
        await system.save(game, 1)
        raw = json.loads(await storage.read("dungeon_crawler_save_1"))
        damage(raw)
        await storage.write("dungeon_crawler_save_1", json.dumps(raw))
        return await system.load(1)

    loaded = asyncio.run(scenario())
    assert loaded.result == LoadResult.CORRUPTED
    assert loaded.state is None


def test_undecodable_save_files_do_not_hide_other_slots(game: GameState, tmp_path: Path) -> None:
    async def scenario():
        system = SaveSystem(FileSaveStorage(tmp_path), clock=_ticker())
        await system.save(game, 1)
        (tmp_path / "dungeon_crawler_save_2.json").write_bytes(b"\xff\xfe\x00garbage")
        (tmp_path / "dungeon_crawler_save_0.json").write_bytes(b"\xff\xfe\x00garbage")
        return (
            await system.load(2),
            await system.list_slots(),
            await system.most_recent_save(),
            await system.has_auto_save(),
        )

    broken, listed, latest, has_auto = asyncio.run(scenario())
    assert broken.result == LoadResult.CORRUPTED
    assert broken.state is None
    assert [meta.save_slot for meta in listed] == [1]
    assert latest.metadata.save_slot == 1
    assert has_auto is True


def test_slots_are_listed_deleted_and_cleared(game: GameState) -> None:
    async def scenario():
        system = SaveSystem(MemorySaveStorage(), clock=_ticker())
        await system.save(game, 2)
        await system.auto_save(game)
        listed = [meta.save_slot for meta in await system.list_slots()]
        deleted = await system.delete_slot(2)
        deleted_again = await system.delete_slot(2)
        has_auto = await system.has_auto_save()
        cleared = await system.clear_all_saves()
        remaining = await system.list_slots()
        return listed, deleted, deleted_again, has_auto, cleared, remaining

    listed, deleted, deleted_again, has_auto, cleared, remaining = asyncio.run(scenario())
    assert listed == [0, 2]
    assert deleted is True
    assert deleted_again is False
    assert has_auto is True
    assert cleared is True
    assert remaining == []


def test_most_recent_save_wins(game: GameState) -> None:
    async def scenario():
        system = SaveSystem(MemorySaveStorage(), clock=_ticker())
        empty = await system.load_most_recent()
        await system.save(game, 3)
        await system.save(game, 1)
        return empty, await system.load_most_recent()

    empty, latest = asyncio.run(scenario())
    assert empty.result == LoadResult.NOT_FOUND
    assert latest.ok
    assert latest.save_data.metadata.save_slot == 1


def test_file_storage_writes_one_json_file_per_slot(game: GameState, tmp_path: Path) -> None:
    directory = tmp_path / "saves"

    async def scenario():
        system = SaveSystem(FileSaveStorage(directory))
        saved = await system.save(game, 1)
        loaded = await system.load(1)
        keys = await system.storage.keys()
        deleted = await system.delete_slot(1)
        return saved, loaded, keys, deleted

    saved, loaded, keys, deleted = asyncio.run(scenario())
    assert saved.ok
    assert loaded.ok
    assert keys == ["dungeon_crawler_save_1"]
    assert deleted is True
    assert not (directory / "dungeon_crawler_save_1.json").exists()


def test_auto_save_reasons(game: GameState) -> None:
    service = AutoSaveService(SaveSystem(MemorySaveStorage()), interval=10)
    current = copy.deepcopy(game)
    assert service.reasons(game, current) == []

    current.current_room_id = "elsewhere"
    current.character.level += 1
    current.turn_count = 10
    assert service.reasons(game, current) == [
        "room movement",
        f"level up to {current.character.level}",
        "periodic save after 10 turns",
    ]


def test_auto_save_after_turn_writes_slot_zero(game: GameState) -> None:
    async def scenario():
        system = SaveSystem(MemorySaveStorage())
        service = AutoSaveService(system, interval=10)
        quiet = await service.after_turn(game, copy.deepcopy(game))
        moved = copy.deepcopy(game)
        moved.turn_count = 12
        operation = await service.after_turn(game, moved)
        return quiet, operation, service.last_auto_save_turn, await system.has_auto_save()

    quiet, operation, last_turn, has_auto = asyncio.run(scenario())
    assert quiet is None
    assert operation.ok
    assert operation.save_data.metadata.save_slot == 0
    assert last_turn == 12
    assert has_auto is True
