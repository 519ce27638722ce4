from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crawler.characters import Item, StatusEffect, create_character
from crawler.dungeon.models import (
    Dungeon,
    ElementEffect,
    Hazard,
    InteractiveElement,
    Lock,
    Puzzle,
    Room,
    Trap,
)
from crawler.errors import RuleViolation
from crawler.rng import SeededRandom
from crawler.rules import (
    activate_element,
    attempt_puzzle,
    detect_trap,
    disarm_trap,
    pick_lock,
    process_hazards,
    skill_check,
    tick_status_effects,
    use_key,
)


class ScriptedDice:
    def __init__(self, rolls):
        self.rolls = list(rolls)

    def randint(self, minimum: int, maximum: int) -> int:
        return self.rolls.pop(0)


def spike_trap(**overrides) -> Trap:
    values = dict(
        id="trap-1",
        name="Spike Trap",
        description="Sharp spikes shoot up from the floor.",
        type="spike",
        detection_dc=14,
        disarm_dc=13,
        damage="2d6 piercing",
        effect="damage",
    )
    values.update(overrides)
    return Trap(**values)


def test_skill_check_adds_modifier_proficiency_and_class_bonus() -> None:
    rogue = create_character("Vex", "rogue")
    # DEX 13 (+1), proficiency +2, class bonus +3.
    check = skill_check(rogue, "DEX", 15, ScriptedDice([9]), class_bonus=3)
    assert check.total == 15
    assert check.success
    assert check.describe() == "(rolled 9 + 6 = 15 vs DC 15)"


def test_disarm_natural_one_springs_the_trap() -> None:
    character = create_character("Brom", "fighter")
    character.hp_max = character.hp_current = 15
    trap = spike_trap(detected=True)

    result = disarm_trap(character, trap, ScriptedDice([1, 4, 3]))

    assert result.success is False
    assert trap.triggered is True
    assert result.damage == 7
    assert character.hp_current == 15 - 7
    assert "You take 7 piercing damage!" in result.message


def test_trap_damage_cannot_push_hit_points_below_zero() -> None:
    character = create_character("Brom", "fighter")
    character.hp_current = 3
    trap = spike_trap(detected=True)

    result = disarm_trap(character, trap, ScriptedDice([1, 6, 6]))

    assert result.damage == 3
    assert character.hp_current == 0


def test_plain_disarm_failure_leaves_the_trap_armed() -> None:
    character = create_character("Brom", "fighter")
    trap = spike_trap(detected=True)
    result = disarm_trap(character, trap, ScriptedDice([5]))
    assert result.success is False
    assert trap.is_armed
    assert character.hp_current == character.hp_max


def test_disarm_requires_detection_first() -> None:
    character = create_character("Brom", "fighter")
    with pytest.raises(RuleViolation):
        disarm_trap(character, spike_trap(), ScriptedDice([20]))


def test_detect_then_disarm() -> None:
    rogue = create_character("Vex", "rogue")
    trap = spike_trap()
    assert detect_trap(rogue, trap, ScriptedDice([15])).success
    assert trap.detected
    assert disarm_trap(rogue, trap, ScriptedDice([10])).success
    assert trap.disarmed and not trap.is_armed


def test_pick_lock_success_and_jamming() -> None:
    character = create_character("Brom", "fighter")
    simple = Lock(id="lock-1", type="simple", difficulty=10)
    assert pick_lock(character, simple, ScriptedDice([7])).success
    assert simple.unlocked
    with pytest.raises(RuleViolation):
        pick_lock(character, simple, ScriptedDice([20]))

    complex_lock = Lock(id="lock-2", type="complex", difficulty=15)
    for _ in range(3):
        result = pick_lock(character, complex_lock, ScriptedDice([2]))
    assert not result.success
    assert "jams" in result.message
    assert complex_lock.difficulty == 20
    assert complex_lock.attempts == 3


def test_use_key_checks_the_key_and_the_bag() -> None:
    character = create_character("Brom", "fighter")
    lock = Lock(id="lock-1", type="simple", difficulty=12, key_id="key-lock-1")
    key = Item(id="key-lock-1", name="Iron Key", item_type="key", key_id="key-lock-1")
    wrong = Item(id="key-lock-9", name="Brass Key", item_type="key", key_id="key-lock-9")

    with pytest.raises(RuleViolation):
        use_key(character, lock, key)
    character.inventory.extend([key, wrong])
    with pytest.raises(RuleViolation):
        use_key(character, lock, wrong)
    assert use_key(character, lock, key).success
    assert lock.unlocked


def test_puzzle_answers_and_lockout() -> None:
    reward = Item(id="item-1", name="Silver Ring", item_type="accessory")
    puzzle = Puzzle(
        id="puzzle-1",
        name="Riddle of the Sphinx",
        description="What walks on four legs in the morning?",
        type="riddle",
        solution="Man",
        reward=[reward],
    )
    rng = SeededRandom(1)
    wrong = attempt_puzzle(puzzle, "dog", rng)
    assert not wrong.success
    assert "2 attempts remaining" in wrong.message

    solved = attempt_puzzle(puzzle, "  MAN ", rng)
    assert solved.success
    assert solved.items_found == [reward]
    assert puzzle.reward == []
    with pytest.raises(RuleViolation):
        attempt_puzzle(puzzle, "man", rng)

    stubborn = Puzzle(id="puzzle-2", name="Lock Dial", description="", type="math", solution="42", max_attempts=1)
    attempt_puzzle(stubborn, "41", rng)
    assert stubborn.locked_out
    with pytest.raises(RuleViolation):
        attempt_puzzle(stubborn, "42", rng)


def test_status_effects_tick_and_expire() -> None:
    character = create_character("Brom", "fighter")
    character.status_effects.append(StatusEffect("poisoned", 2))
    assert tick_status_effects(character) == ["The poison burns in your veins. You take 1 damage."]
    assert character.hp_current == character.hp_max - 1
    assert tick_status_effects(character) == ["The poison works its way out of your system."]
    assert character.status_effects == []


def test_temporary_hazards_dissipate() -> None:
    character = create_character("Brom", "fighter")
    room = Room(id="room-1-0", coordinates=(1, 0), room_type="chamber")
    room.hazards.append(
        Hazard(
            id="hazard-1",
            name="Minor Fog",
            description="",
            type="thick_fog",
            severity="minor",
            is_permanent=False,
            duration=1,
        )
    )
    results = process_hazards(character, room, SeededRandom(3))
    assert [result.message for result in results][-1] == "The Minor Fog dissipates."
    assert room.hazards == []


def test_movement_hazards_only_fire_on_entry() -> None:
    character = create_character("Brom", "fighter")
    room = Room(id="room-1-0", coordinates=(1, 0), room_type="corridor")
    room.hazards.append(
        Hazard(
            id="hazard-1",
            name="Minor Unstable Floor",
            description="",
            type="unstable_floor",
            severity="minor",
            damage_per_turn="2d6",
            triggered_by_movement=True,
        )
    )
    assert process_hazards(character, room, ScriptedDice([])) == []
    # Save roll 2 + DEX (+1) misses DC 10, then 3 + 4 falling damage.
    results = process_hazards(character, room, ScriptedDice([2, 3, 4]), moved=True)
    assert results[0].damage == 7
    assert len(room.hazards) == 1


def test_lever_opens_hidden_passage() -> None:
    dungeon = Dungeon(id="test", seed=1)
    hall = Room(id="hall", coordinates=(0, 0), room_type="entrance")
    vault = Room(id="vault", coordinates=(1, 0), room_type="chamber")
    dungeon.rooms = {hall.id: hall, vault.id: vault}
    dungeon.entrance_room_id = hall.id
    hall.hidden_exits["east"] = vault.id
    vault.hidden_exits["west"] = hall.id
    lever = InteractiveElement(
        id="element-1",
        name="Rusty Lever",
        description="A lever set into the wall.",
        type="lever",
        effect=ElementEffect(target="room", description="Stone grinds on stone.", room_effect="open_passage"),
        uses_remaining=1,
    )
    character = create_character("Brom", "fighter")

    result = activate_element(lever, character, hall, dungeon, SeededRandom(2), turn=1)

    assert result.success
    assert "A new passage leads east." in result.message
    assert hall.exits == {"east": "vault"}
    assert vault.exits == {"west": "hall"}
    assert not hall.hidden_exits and not vault.hidden_exits
    with pytest.raises(RuleViolation):
        activate_element(lever, character, hall, dungeon, SeededRandom(2), turn=2)
