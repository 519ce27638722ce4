from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crawler.ai import AIBehaviorSystem, TacticalSnapshot
from crawler.characters import AbilityScores, create_character
from crawler.combat import CombatSystem
from crawler.content import ContentLibrary
from crawler.dungeon.models import Enemy, EnemyAttack
from crawler.rng import SeededRandom


@pytest.fixture(scope="module")
def library() -> ContentLibrary:
    return ContentLibrary.load_default()


def make_enemy(name: str, behavior: str, *, hp: int = 10, abilities=()) -> Enemy:
    return Enemy(
        id=f"{name.lower()}-1",
        name=name,
        kind=behavior,
        level=1,
        ability_scores=AbilityScores({"STR": 10, "DEX": 10, "CON": 10, "INT": 10, "WIS": 10, "CHA": 10}),
        hp_current=hp,
        hp_max=10,
        armor_class=12,
        attacks=[EnemyAttack("Claw", "1d4", 2)],
        behavior=behavior,
        abilities=list(abilities),
    )


class ScriptedRandom:
    """Rolls no variance and answers every chance with a fixed result."""

    def __init__(self, lucky: bool = True) -> None:
        self.lucky = lucky
        self.chances = []

    def next_int(self, minimum: int, maximum: int) -> int:
        return 0

    def chance(self, probability: float) -> bool:
        self.chances.append(probability)
        return self.lucky


def _encounter(library: ContentLibrary, enemies):
    rng = SeededRandom(6)
    ai = AIBehaviorSystem(library, rng)
    character = create_character("Brom", "fighter")
    state = CombatSystem(rng, ai=ai).initiate_combat(character, enemies)
    return ai, state, character


def test_healthy_enemy_attacks_the_player(library: ContentLibrary) -> None:
    ai, state, character = _encounter(library, [make_enemy("Goblin", "goblin")])
    decision = ai.decide_action(state, state.participant("enemy-0"), character)
    assert decision.action == "attack"
    assert decision.target_id == "player"


def test_cowardly_enemy_flees_when_nearly_dead(library: ContentLibrary) -> None:
    ai, state, character = _encounter(library, [make_enemy("Goblin", "goblin", hp=2)])
    decision = ai.decide_action(state, state.participant("enemy-0"), character)
    assert decision.action == "flee"


def test_berserker_keeps_attacking_when_hurt(library: ContentLibrary) -> None:
    ai, state, character = _encounter(library, [make_enemy("Orc", "orc", hp=2)])
    decision = ai.decide_action(state, state.participant("enemy-0"), character)
    assert decision.action == "attack"


def test_unknown_behaviour_falls_back_to_default_profile(library: ContentLibrary) -> None:
    ai, state, _ = _encounter(library, [make_enemy("Mimic", "mimic")])
    assert ai.profile_for(state.enemies[0]).key == "goblin"


def test_coordinated_groups_focus_fire(library: ContentLibrary) -> None:
    ai, state, _ = _encounter(library, [make_enemy("Rat", "rat"), make_enemy("Rat", "rat")])
    decisions = ai.coordinate_group_actions(state)
    assert set(decisions) == {"enemy-0", "enemy-1"}
    assert all(decision.target_id == "player" for decision in decisions.values())

    solo_ai, solo_state, _ = _encounter(library, [make_enemy("Rat", "rat")])
    assert solo_ai.coordinate_group_actions(solo_state) == {}


def test_snapshot_reports_health_and_allies(library: ContentLibrary) -> None:
    ai, state, character = _encounter(
        library, [make_enemy("Goblin", "goblin", hp=5), make_enemy("Goblin", "goblin")]
    )
    snapshot = ai.tactical_snapshot(state, state.participant("enemy-0"), character)
    assert snapshot.health_percentage == pytest.approx(0.5)
    assert snapshot.ally_count == 1
    assert snapshot.enemy_count == 1
    assert snapshot.round_number == 1


@pytest.mark.parametrize("lucky, expected", [(True, "ability"), (False, "attack")])
def test_tactical_enemies_usually_prefer_abilities(library: ContentLibrary, lucky: bool, expected: str) -> None:
    _, state, character = _encounter(library, [make_enemy("Skeleton", "skeleton", hp=5, abilities=["bone_shield"])])
    rng = ScriptedRandom(lucky)

    decision = AIBehaviorSystem(library, rng).decide_action(state, state.participant("enemy-0"), character)

    assert decision.action == expected
    assert rng.chances == [0.7]
    if lucky:
        assert decision.ability == "bone_shield"


def test_tactical_enemies_without_abilities_just_attack(library: ContentLibrary) -> None:
    _, state, character = _encounter(library, [make_enemy("Bandit", "bandit")])
    rng = ScriptedRandom()

    decision = AIBehaviorSystem(library, rng).decide_action(state, state.participant("enemy-0"), character)

    assert decision.action == "attack"
    assert rng.chances == []


def test_badly_hurt_enemies_favour_healing(library: ContentLibrary) -> None:
    ai = AIBehaviorSystem(library, ScriptedRandom())
    enemy = make_enemy("Skeleton", "skeleton", abilities=["bone_shield"])
    profile = ai.profile_for(enemy)
    heal = library.abilities.get("bone_shield")

    def snapshot(health: float, player_health: float = 1.0) -> TacticalSnapshot:
        return TacticalSnapshot(health, player_health, ally_count=0, enemy_count=1, round_number=1)

    assert ai.ability_priority(heal, enemy, snapshot(0.5), profile) == pytest.approx(23.5)
    assert ai.ability_priority(heal, enemy, snapshot(0.2), profile) == pytest.approx(48.5)

    trick = library.abilities.get("dirty_trick")
    assert ai.ability_priority(trick, enemy, snapshot(1.0), profile) == pytest.approx(21.0)
    assert ai.ability_priority(trick, enemy, snapshot(1.0, player_health=0.4), profile) == pytest.approx(36.0)


def test_enemies_with_no_options_defend(library: ContentLibrary) -> None:
    ai, state, character = _encounter(library, [make_enemy("Orc", "orc")])
    state.player.is_active = False

    decision = ai.decide_action(state, state.participant("enemy-0"), character)

    assert decision.action == "defend"
    assert decision.priority == 0
    assert decision.target_id is None
