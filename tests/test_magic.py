from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crawler.characters import AbilityScores, StatusEffect, create_character
from crawler.content import ContentLibrary
from crawler.dungeon.models import Dungeon, Enemy, EnemyAttack, Room
from crawler.engine import GameEngine
from crawler.errors import RuleViolation, UserInputError
from crawler.magic import MagicSystem
from crawler.rng import SeededRandom
from crawler.state import GameState


@pytest.fixture(scope="module")
def library() -> ContentLibrary:
    return ContentLibrary.load_default()


def make_rat(hp: int = 30) -> Enemy:
    return Enemy(
        id="rat-1",
        name="Giant Rat",
        kind="rat",
        level=1,
        ability_scores=AbilityScores({"STR": 7, "DEX": 15, "CON": 11, "INT": 2, "WIS": 10, "CHA": 4}),
        hp_current=hp,
        hp_max=hp,
        armor_class=12,
        attacks=[EnemyAttack("Bite", "1d2", 0, "bites")],
        behavior="orc",
    )


def test_magic_missile_always_hits_and_costs_mana(library: ContentLibrary) -> None:
    wizard = create_character("Mira", "wizard")
    starting_mana = wizard.mana_current
    rat = make_rat()

    result = MagicSystem(library, SeededRandom(5)).cast(wizard, "magic missile", targets=[rat])

    assert 6 <= result.damage <= 15
    assert rat.hp_current == 30 - result.damage
    assert result.target is rat
    assert wizard.mana_current == starting_mana - 1
    assert result.message.startswith("Mira casts Magic Missile!")


def test_casting_needs_mana_and_knowledge(library: ContentLibrary) -> None:
    magic = MagicSystem(library, SeededRandom(5))
    with pytest.raises(RuleViolation):
        magic.cast(create_character("Brom", "fighter"), "magic missile", targets=[make_rat()])

    wizard = create_character("Mira", "wizard")
    with pytest.raises(UserInputError):
        magic.cast(wizard, "wish")
    with pytest.raises(RuleViolation):
        magic.cast(wizard, "cure_wounds")
    with pytest.raises(RuleViolation):
        magic.cast(wizard, "magic missile")

    wizard.mana_current = 0
    with pytest.raises(RuleViolation):
        magic.cast(wizard, "magic missile", targets=[make_rat()])


def test_blinded_casters_cannot_cast(library: ContentLibrary) -> None:
    wizard = create_character("Mira", "wizard")
    wizard.status_effects.append(StatusEffect("blinded", 1))
    with pytest.raises(RuleViolation):
        MagicSystem(library, SeededRandom(5)).cast(wizard, "shield", targets=[make_rat()])


def test_buff_spells_apply_their_status_effect(library: ContentLibrary) -> None:
    wizard = create_character("Mira", "wizard")
    MagicSystem(library, SeededRandom(5)).cast(wizard, "shield")
    assert [effect.type for effect in wizard.status_effects] == ["protected"]


def _wizard_state(enemy: Enemy | None = None) -> GameState:
    dungeon = Dungeon(id="spells", seed=3)
    entrance = Room(id="entrance", coordinates=(0, 0), room_type="entrance", visited=True)
    hall = Room(id="hall", coordinates=(1, 0), room_type="chamber")
    dungeon.rooms = {entrance.id: entrance, hall.id: hall}
    dungeon.connect(entrance, "east", hall)
    if enemy is not None:
        hall.contents.enemies.append(enemy)
    wizard = create_character("Mira", "wizard")
    wizard.hp_max = wizard.hp_current = 40
    return GameState(character=wizard, dungeon=dungeon, current_room_id="entrance")


def test_damage_spells_need_a_fight(library: ContentLibrary) -> None:
    engine = GameEngine(library, seed=1, clock=lambda: 0.0)
    state = _wizard_state()

    result = engine.process_command(state, "cast magic missile")

    assert result is state
    assert state.message_log[-1].text == "There is nothing here to target with Magic Missile."


def test_spells_resolve_as_a_combat_turn(library: ContentLibrary) -> None:
    engine = GameEngine(library, seed=1, clock=lambda: 0.0)
    state = engine.process_command(_wizard_state(make_rat(hp=1)), "east")
    assert state.in_combat

    state = engine.process_command(state, "cast magic missile")

    texts = [message.text for message in state.message_log]
    assert any("Mira casts Magic Missile!" in text for text in texts)
    assert "Victory! You have defeated all enemies!" in texts
    assert state.character.mana_current == state.character.mana_max - 1
