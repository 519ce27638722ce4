from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crawler.characters import AbilityScores, Item, ItemProperty, create_character
from crawler.commands import HELP_TEXT
from crawler.content import ContentLibrary
from crawler.dungeon.models import (
    Dungeon,
    ElementEffect,
    Enemy,
    EnemyAttack,
    InteractiveElement,
    Lock,
    LootTable,
    Room,
    Trap,
)
from crawler.engine import GameEngine, new_character
from crawler.state import MAX_MESSAGES, GameState


@pytest.fixture(scope="module")
def library() -> ContentLibrary:
    return ContentLibrary.load_default()


@pytest.fixture()
def engine(library: ContentLibrary) -> GameEngine:
    return GameEngine(library, seed=42, clock=lambda: 0.0)


def make_enemy(*, hp: int = 30, armor_class: int = 12, damage: str = "1d2", hit_bonus: int = 0, loot=None) -> Enemy:
    return Enemy(
        id="orc-1",
        name="Orc",
        kind="orc",
        level=1,
        ability_scores=AbilityScores({"STR": 10, "DEX": 10, "CON": 10, "INT": 7, "WIS": 10, "CHA": 8}),
        hp_current=hp,
        hp_max=hp,
        armor_class=armor_class,
        attacks=[EnemyAttack("Club", damage, hit_bonus, "swings at")],
        behavior="orc",
        loot=loot or LootTable(),
    )


def build_state(*, enemy: Enemy | None = None, hp: int = 40, **character_options) -> GameState:
    """Entrance with a hall to the east and a cellar to the south."""

    dungeon = Dungeon(id="test", seed=11)
    entrance = Room(id="entrance", coordinates=(0, 0), room_type="entrance", visited=True)
    hall = Room(id="hall", coordinates=(1, 0), room_type="chamber")
    cellar = Room(id="cellar", coordinates=(0, 1), room_type="corridor")
    dungeon.rooms = {room.id: room for room in (entrance, hall, cellar)}
    dungeon.connect(entrance, "east", hall)
    dungeon.connect(entrance, "south", cellar)
    if enemy is not None:
        hall.contents.enemies.append(enemy)
    character = create_character("Tess", "fighter", **character_options)
    character.hp_max = character.hp_current = hp
    return GameState(character=character, dungeon=dungeon, current_room_id="entrance")


def texts(state: GameState) -> list[str]:
    return [message.text for message in state.message_log]


def test_new_game_welcomes_and_describes(engine: GameEngine, library: ContentLibrary) -> None:
    state = engine.start_new_game()
    assert state.current_room_id == state.dungeon.entrance_room_id
    assert state.turn_count == 0
    assert state.rng_state is not None
    assert texts(state)[0] == "Welcome to the dungeon, Adventurer!"
    assert state.message_log[-1].type == "description"
    assert state.character.equipment.weapon is not None

    again = GameEngine(library, seed=42, clock=lambda: 0.0).start_new_game()
    assert again.dungeon.to_dict() == state.dungeon.to_dict()


@pytest.mark.parametrize(
    ("command", "message", "message_type"),
    [
        ("xyzzy", "Unknown command: xyzzy. Type 'help' for available commands.", "error"),
        ("", "Please enter a command.", "error"),
        ("get", "What do you want to take?", "error"),
        ("west", "You cannot go west.", "action"),
        ("attack", "You are not in combat.", "action"),
    ],
)
def test_failed_commands_do_not_spend_a_turn(engine: GameEngine, command: str, message: str, message_type: str) -> None:
    state = build_state()
    before = state.dungeon.to_dict()

    result = engine.process_command(state, command)

    assert result is state
    assert state.turn_count == 0
    assert state.message_log[-1].text == message
    assert state.message_log[-1].type == message_type
    assert state.dungeon.to_dict() == before


def test_move_commits_a_new_state(engine: GameEngine) -> None:
    state = build_state()

    moved = engine.process_command(state, "east")

    assert moved is not state
    assert moved.current_room_id == "hall"
    assert moved.previous_room_id == "entrance"
    assert moved.turn_count == 1
    assert moved.current_room.visited
    assert state.current_room_id == "entrance"
    assert not state.dungeon.get_room("hall").visited
    assert moved.message_log[-1].text.startswith("You go east.")
    assert moved.message_log[-1].type == "description"


def test_locked_exit_opens_with_its_key(engine: GameEngine) -> None:
    state = build_state()
    lock = Lock(id="lock-1", type="simple", difficulty=12, key_id="key-lock-1")
    state.dungeon.get_room("entrance").locked_exits["east"] = lock
    state.dungeon.get_room("hall").locked_exits["west"] = Lock.from_dict(lock.to_dict())

    blocked = engine.process_command(state, "e")
    assert blocked.message_log[-1].text == "The east exit is locked."

    state.character.inventory.append(Item(id="key-lock-1", name="Iron Key", item_type="key", key_id="key-lock-1"))
    unlocked = engine.process_command(state, "use iron key")
    assert unlocked.message_log[-1].text.endswith("The east exit is now open.")
    assert all(lock.unlocked for lock in unlocked.dungeon.locks_with_id("lock-1"))

    moved = engine.process_command(unlocked, "east")
    assert moved.current_room_id == "hall"


def test_entering_an_occupied_room_starts_combat(engine: GameEngine) -> None:
    state = engine.process_command(build_state(enemy=make_enemy()), "east")

    assert state.in_combat
    assert "Combat begins!" in texts(state)
    assert "You face: Orc" in texts(state)
    assert state.combat.current.is_player

    stuck = engine.process_command(state, "west")
    assert stuck is state
    assert stuck.message_log[-1].text == "You can't just walk away from a fight! Try to flee instead."


@pytest.mark.parametrize("command", ["activate circle", "use circle"])
def test_room_objects_cannot_be_used_mid_fight(engine: GameEngine, command: str) -> None:
    state = build_state(enemy=make_enemy())
    state.dungeon.get_room("hall").interactive_elements.append(
        InteractiveElement(
            id="circle-1",
            name="Teleportation Circle",
            description="Runes glow on the floor.",
            type="teleporter",
            effect=ElementEffect(target="teleport", description="", teleport_destination="cellar"),
        )
    )
    state = engine.process_command(state, "east")
    assert state.in_combat

    result = engine.process_command(state, command)

    assert result is state
    assert result.current_room_id == "hall"
    assert result.in_combat
    assert result.message_log[-1].text == "You can't do that during combat!"
    assert [enemy.name for enemy in result.dungeon.get_room("hall").contents.living_enemies] == ["Orc"]


def test_victory_drops_loot_and_awards_experience(engine: GameEngine) -> None:
    charm = Item(id="loot-1", name="Bone Charm", item_type="accessory")
    state = engine.process_command(
        build_state(enemy=make_enemy(hp=1, armor_class=1, loot=LootTable(items=[charm], gold=5))), "east"
    )
    for _ in range(30):
        if not state.in_combat:
            break
        state = engine.process_command(state, "attack")

    assert "Victory! You have defeated all enemies!" in texts(state)
    assert "You gained 50 experience points!" in texts(state)
    assert state.combat is None
    assert state.character.experience == 50
    assert state.character.gold == 5
    hall = state.dungeon.get_room("hall")
    assert hall.contents.living_enemies == []
    assert [item.name for item in hall.contents.items] == ["Bone Charm"]

    taken = engine.process_command(state, "get bone charm")
    assert [item.name for item in taken.character.inventory] == ["Bone Charm"]


def test_defeat_returns_the_player_to_the_entrance(engine: GameEngine) -> None:
    state = engine.process_command(
        build_state(enemy=make_enemy(hp=50, damage="5d1", hit_bonus=30), hp=1), "east"
    )
    for _ in range(40):
        if not state.in_combat:
            break
        state = engine.process_command(state, "defend")

    assert "You have been defeated..." in texts(state)
    assert "You awaken back at the dungeon entrance, barely alive..." in texts(state)
    assert state.combat is None
    assert state.current_room_id == "entrance"
    assert state.character.hp_current == 1
    assert state.dungeon.get_room("hall").contents.living_enemies


def test_fleeing_returns_to_the_previous_room(engine: GameEngine) -> None:
    scores = {"STR": 10, "DEX": 30, "CON": 10, "INT": 10, "WIS": 10, "CHA": 10}
    state = engine.process_command(build_state(enemy=make_enemy(), ability_scores=scores), "east")
    for _ in range(40):
        if not state.in_combat:
            break
        state = engine.process_command(state, "flee")

    assert "You successfully fled from combat." in texts(state)
    assert state.current_room_id == "entrance"
    assert state.dungeon.get_room("hall").contents.living_enemies


def test_equipping_returns_the_old_weapon_to_the_pack(engine: GameEngine, library: ContentLibrary) -> None:
    state = build_state()
    state.character = new_character(library, "Tess", "fighter")
    state.character.inventory.append(Item(id="item-9", name="Shortsword", item_type="weapon"))

    equipped = engine.process_command(state, "equip shortsword")

    assert equipped.message_log[-1].text == "You unequip the Longsword and equip the Shortsword."
    assert equipped.character.equipment.weapon.name == "Shortsword"
    assert [item.name for item in equipped.character.inventory] == ["Longsword"]


def test_unequipping_with_a_full_pack_drops_to_the_floor(engine: GameEngine, library: ContentLibrary) -> None:
    state = build_state()
    state.character = new_character(library, "Tess", "fighter")
    state.character.inventory.extend(
        Item(id=f"rock-{index}", name="Rock", item_type="treasure") for index in range(20)
    )

    result = engine.process_command(state, "unequip weapon")

    assert result.message_log[-1].text == "You unequip the Longsword and drop it (inventory full)."
    assert result.character.equipment.weapon is None
    assert [item.name for item in result.current_room.contents.items] == ["Longsword"]
    assert len(result.character.inventory) == 20


def test_gold_goes_to_the_purse(engine: GameEngine) -> None:
    state = build_state()
    state.current_room.contents.items.append(
        Item(id="gold-1", name="12 Gold Coins", item_type="treasure", properties=(ItemProperty("gold", 12),))
    )
    result = engine.process_command(state, "get gold")
    assert result.character.gold == 12
    assert result.current_room.contents.items == []


def test_rest_heals_a_quarter(engine: GameEngine) -> None:
    state = build_state(hp=12)
    state.character.hp_current = 4
    rested = engine.process_command(state, "rest")
    assert rested.character.hp_current == 7
    assert rested.message_log[-1].text == "You rest and recover 3 health."


def test_help_lists_commands(engine: GameEngine) -> None:
    result = engine.process_command(build_state(), "help")
    assert result.message_log[-1].text == HELP_TEXT
    assert result.message_log[-1].type == "system"


def test_enemies_without_combat_are_reported_as_a_defect(engine: GameEngine, caplog) -> None:
    state = build_state()
    state.current_room.contents.enemies.append(make_enemy())

    with caplog.at_level(logging.ERROR, logger="crawler.engine"):
        result = engine.process_command(state, "attack")

    assert result is state
    assert state.turn_count == 0
    assert state.message_log[-1].text == "Something went wrong. That action could not be completed."
    assert any(record.levelno == logging.ERROR for record in caplog.records)


def test_commands_replay_identically_from_the_same_state(engine: GameEngine) -> None:
    state = build_state()
    state.current_room.traps.append(
        Trap(
            id="trap-1",
            name="Spike Trap",
            description="Sharp spikes shoot up from the floor.",
            type="spike",
            detection_dc=14,
            disarm_dc=13,
            damage="2d6 piercing",
            effect="damage",
        )
    )
    first = engine.process_command(state, "detect traps")
    second = engine.process_command(state, "detect traps")
    assert texts(first) == texts(second)
    assert first.rng_state == second.rng_state
    assert first.rng_state != state.rng_state


def test_message_log_is_bounded(engine: GameEngine) -> None:
    state = build_state()
    for _ in range(MAX_MESSAGES + 20):
        state = engine.process_command(state, "wait")
    assert len(state.message_log) == MAX_MESSAGES
    assert state.message_log[-1].id == f"msg-{MAX_MESSAGES + 20}"
    assert state.turn_count == MAX_MESSAGES + 20
