"""Unit coverage for combat helpers."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crawler.characters import AbilityScores, StatusEffect, create_character
from crawler.combat import CombatState, CombatSystem, attack_roll, flee_probability, weapon_damage
from crawler.dungeon.models import Enemy, EnemyAttack, LootTable
from crawler.errors import RuleViolation
from crawler.rng import SeededRandom


class ScriptedRandom:
    """Dice source returning predetermined rolls and chance outcomes."""

    def __init__(self, rolls=(), chances=()):
        self.rolls = list(rolls)
        self.chances = list(chances)

    def randint(self, minimum: int, maximum: int) -> int:
        return self.rolls.pop(0)

    def chance(self, probability: float) -> bool:
        return self.chances.pop(0)

    def choose(self, items):
        return items[0]


def make_enemy(name: str = "Goblin", *, hp: int = 7, armor_class: int = 13, behavior: str = "goblin") -> Enemy:
    return Enemy(
        id=f"{name.lower()}-1",
        name=name,
        kind="goblin",
        level=1,
        ability_scores=AbilityScores({"STR": 8, "DEX": 14, "CON": 10, "INT": 10, "WIS": 8, "CHA": 8}),
        hp_current=hp,
        hp_max=hp,
        armor_class=armor_class,
        attacks=[EnemyAttack("Scimitar", "1d6", 4, "slashes at")],
        behavior=behavior,
        loot=LootTable(gold=3),
    )


def test_plus_five_hits_armor_class_twelve_from_seven_up() -> None:
    for roll in range(1, 21):
        result = attack_roll(5, 12, rng=ScriptedRandom([roll]))
        assert result.hits is (roll >= 7)
        assert result.total == roll + 5


def test_natural_rolls_override_totals() -> None:
    assert attack_roll(30, 10, rng=ScriptedRandom([1])).hits is False
    critical = attack_roll(-5, 30, rng=ScriptedRandom([20]))
    assert critical.hits is True
    assert critical.is_critical_hit is True


def test_flee_probability_is_bounded_and_monotonic() -> None:
    assert flee_probability(0, 1) == pytest.approx(0.5)
    assert flee_probability(10, 1) == pytest.approx(0.9)
    assert flee_probability(-10, 1) == pytest.approx(0.1)
    for dex in range(-5, 6):
        chances = [flee_probability(dex, count) for count in range(1, 8)]
        assert all(0.1 <= chance <= 0.9 for chance in chances)
        assert all(later <= earlier for earlier, later in zip(chances, chances[1:]))


def test_unarmed_damage_falls_back_to_a_d4() -> None:
    character = create_character("Brom", "fighter")
    assert weapon_damage(character) == ("1d4", 0)


def test_initiative_ties_keep_the_player_first() -> None:
    character = create_character("Brom", "fighter")
    # Player 11 + DEX 13 (+1) ties the goblin's 10 + DEX 14 (+2).
    system = CombatSystem(ScriptedRandom([11, 10]))
    state = system.initiate_combat(character, [make_enemy()])
    assert state.turn_order == ["player", "enemy-0"]
    assert state.current.is_player


def test_initiative_orders_descending() -> None:
    character = create_character("Brom", "fighter")
    system = CombatSystem(ScriptedRandom([2, 18]))
    state = system.initiate_combat(character, [make_enemy()])
    assert state.turn_order == ["enemy-0", "player"]


def test_initiate_combat_works_on_copies() -> None:
    character = create_character("Brom", "fighter")
    enemy = make_enemy()
    state = CombatSystem(SeededRandom(4)).initiate_combat(character, [enemy])
    state.enemies[0].take_damage(3)
    assert enemy.hp_current == enemy.hp_max


def test_killing_blow_ends_combat_in_victory() -> None:
    character = create_character("Brom", "fighter")
    # Initiative 20 vs 1, attack roll 15, unarmed damage 3.
    system = CombatSystem(ScriptedRandom([20, 1, 15, 3]))
    state = system.initiate_combat(character, [make_enemy(hp=1)])

    action = system.player_attack(state, character)

    assert action.damage == 1
    assert "is defeated" in action.description
    assert state.enemies[0].hp_current == 0
    assert system.check_combat_end(state) == "victory"
    assert system.check_combat_end(state) == "victory"
    assert state.survivors() == []
    assert state.defeated() == state.enemies


def test_player_defeat_is_terminal() -> None:
    character = create_character("Brom", "fighter")
    system = CombatSystem(SeededRandom(2))
    state = system.initiate_combat(character, [make_enemy()])
    state.player.is_active = False
    assert system.check_combat_end(state) == "defeat"
    state.participant("enemy-0").is_active = False
    assert system.check_combat_end(state) == "defeat"


def test_successful_flee_is_terminal() -> None:
    character = create_character("Brom", "fighter")
    system = CombatSystem(ScriptedRandom([20, 1], chances=[True]))
    state = system.initiate_combat(character, [make_enemy()])

    action = system.player_flee(state, character)

    assert "successfully flees" in action.description
    assert state.status == "fled"
    assert system.check_combat_end(state) == "fled"


def test_exhaustion_prevents_fleeing() -> None:
    character = create_character("Brom", "fighter")
    character.status_effects.append(StatusEffect("exhausted", 2))
    system = CombatSystem(ScriptedRandom([20, 1]))
    state = system.initiate_combat(character, [make_enemy()])
    with pytest.raises(RuleViolation):
        system.player_flee(state, character)


def test_defending_reduces_incoming_damage() -> None:
    character = create_character("Brom", "fighter")
    # Initiative, then the goblin's attack roll of 19 and a damage roll of 5.
    system = CombatSystem(ScriptedRandom([20, 1, 19, 5]))
    state = system.initiate_combat(character, [make_enemy()])
    system.player_defend(state)
    system.advance_turn(state)

    actions = system.run_enemy_turns(state, character)

    assert actions[0].damage == 3
    assert character.hp_current == character.hp_max - 3
    assert state.current.is_player
    assert state.round == 2


def test_hit_points_never_drop_below_zero() -> None:
    character = create_character("Brom", "fighter")
    assert character.take_damage(500) == 12
    assert character.hp_current == 0
    enemy = make_enemy()
    assert enemy.take_damage(100) == 7
    assert enemy.hp_current == 0
    assert enemy.take_damage(-4) == 0


def test_award_victory_levels_up() -> None:
    character = create_character("Brom", "fighter")
    character.experience = 60
    messages = CombatSystem(SeededRandom(1)).award_victory(character)
    assert character.experience == 110
    assert character.level == 2
    assert character.hp_max == 17
    assert messages[-1].startswith("Level up!")


def test_combat_state_serialises() -> None:
    character = create_character("Brom", "fighter")
    state = CombatSystem(SeededRandom(9)).initiate_combat(character, [make_enemy(), make_enemy("Rat")])
    restored = CombatState.from_dict(state.to_dict())
    assert restored.turn_order == state.turn_order
    assert [enemy.name for enemy in restored.enemies] == ["Goblin", "Rat"]
    with pytest.raises(ValueError):
        CombatState.from_dict({**state.to_dict(), "status": "paused"})
