"""Behaviour-profile driven decision making for enemies in combat."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List

from .characters import Character
from .combat import CombatState, Participant
from .content import BehaviorProfile, ContentLibrary, EnemyAbility
from .dungeon.models import Enemy
from .rng import SeededRandom

__all__ = ["AIBehaviorSystem", "AIDecision", "TacticalSnapshot"]

log = logging.getLogger(__name__)

DEFAULT_PROFILE = "goblin"
TOP_CHOICES = 3
FOCUS_FIRE_THRESHOLD = 0.6


@dataclass(frozen=True)
class TacticalSnapshot:
    health_percentage: float
    player_health_percentage: float
    ally_count: int
    enemy_count: int
    round_number: int

    @property
    def player_wounded(self) -> bool:
        return self.player_health_percentage < 0.5

    def observed(self, condition_type: str) -> float:
        if condition_type == "health_percentage":
            return self.health_percentage
        if condition_type == "ally_count":
            return float(self.ally_count)
        if condition_type == "enemy_count":
            return float(self.enemy_count)
        return float(self.round_number)


@dataclass(frozen=True)
class AIDecision:
    action: str
    reasoning: str
    priority: float
    target_id: str | None = None
    ability: str | None = None


DEFEND = AIDecision(action="defend", reasoning="No valid actions available", priority=0)


class AIBehaviorSystem:
    """Score candidate actions for an enemy and pick one for its profile."""

    def __init__(self, library: ContentLibrary, rng: SeededRandom) -> None:
        self.library = library
        self.rng = rng

    def profile_for(self, enemy: Enemy) -> BehaviorProfile:
        for key in (enemy.behavior, enemy.kind):
            profile = self.library.behaviors.find(key) if key else None
            if profile is not None:
                return profile
        return self.library.behaviors.get(DEFAULT_PROFILE)

    def tactical_snapshot(self, state: CombatState, participant: Participant, character: Character) -> TacticalSnapshot:
        enemy = state.enemy_for(participant)
        allies = [other for other in state.active_enemies() if other.id != participant.id]
        return TacticalSnapshot(
            health_percentage=enemy.hp_current / enemy.hp_max if enemy.hp_max else 0.0,
            player_health_percentage=character.hp_current / character.hp_max if character.hp_max else 0.0,
            ally_count=len(allies),
            enemy_count=1 if state.player.is_active else 0,
            round_number=state.round,
        )

    def usable_abilities(self, enemy: Enemy, participant: Participant, snapshot: TacticalSnapshot) -> List[EnemyAbility]:
        usable = []
        for key in enemy.abilities:
            ability = self.library.abilities.find(key)
            if ability is None:
                log.warning("Enemy %s references unknown ability %s", enemy.id, key)
                continue
            last_used = participant.cooldowns.get(ability.key)
            if last_used is not None and snapshot.round_number - last_used < ability.cooldown:
                continue
            if not all(condition.holds(snapshot.observed(condition.type)) for condition in ability.conditions):
                continue
            if any(enemy.resources.get(name, 0) < cost for name, cost in ability.costs.items()):
                continue
            usable.append(ability)
        return usable

    def ability_priority(
        self,
        ability: EnemyAbility,
        enemy: Enemy,
        snapshot: TacticalSnapshot,
        profile: BehaviorProfile,
    ) -> float:
        priority = float(ability.priority + enemy.level * 2)
        if snapshot.health_percentage < 0.3 and ability.effect == "heal":
            priority += 50
        if snapshot.player_wounded and ability.effect == "damage":
            priority += 30
        priority *= profile.ability_usage
        return priority + self.rng.next_int(-10, 10)

    def candidate_actions(self, state: CombatState, participant: Participant, character: Character) -> List[AIDecision]:
        enemy = state.enemy_for(participant)
        profile = self.profile_for(enemy)
        snapshot = self.tactical_snapshot(state, participant, character)
        player = state.player
        actions: List[AIDecision] = []
        if player.is_active:
            actions.append(
                AIDecision("attack", "Direct attack on player", profile.aggressiveness * 100, target_id=player.id)
            )
        if snapshot.health_percentage < 0.5:
            actions.append(AIDecision("defend", "Low health, taking defensive stance", profile.self_preservation * 80))
        for ability in self.usable_abilities(enemy, participant, snapshot):
            actions.append(
                AIDecision(
                    "ability",
                    f"Use special ability: {ability.name}",
                    self.ability_priority(ability, enemy, snapshot, profile),
                    target_id=player.id if ability.effect == "damage" else participant.id,
                    ability=ability.key,
                )
            )
        if profile.archetype == "cowardly" and snapshot.health_percentage < 0.3:
            actions.append(AIDecision("flee", "Cowardly retreat due to low health", profile.self_preservation * 90))
        return actions

    def decide_action(self, state: CombatState, participant: Participant, character: Character) -> AIDecision:
        actions = self.candidate_actions(state, participant, character)
        if not actions:
            return DEFEND
        profile = self.profile_for(state.enemy_for(participant))
        top = sorted(actions, key=lambda decision: -decision.priority)[:TOP_CHOICES]
        if profile.archetype == "berserker":
            for decision in top:
                if decision.action == "attack":
                    return decision
        if profile.archetype == "tactical" and profile.tactical_awareness > 0.7:
            ability = next((decision for decision in top if decision.ability), None)
            if ability is not None and self.rng.chance(0.7):
                return ability
        return top[0]

    def coordinate_group_actions(self, state: CombatState) -> Dict[str, AIDecision]:
        """Focus fire on the player for well coordinated groups."""

        decisions: Dict[str, AIDecision] = {}
        enemies = state.active_enemies()
        if len(enemies) < 2 or not state.player.is_active:
            return decisions
        for participant in enemies:
            profile = self.profile_for(state.enemy_for(participant))
            if profile.group_coordination > FOCUS_FIRE_THRESHOLD:
                decisions[participant.id] = AIDecision(
                    "attack", "Group focus fire coordination", 100, target_id=state.player.id
                )
        return decisions
