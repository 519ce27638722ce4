"""Turn-based combat between the player character and room enemies."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence, Tuple

from .characters import Character, StatusEffect, level_for_experience
from .dice import DiceSource, roll_d20, roll_dice
from .dungeon.models import Enemy, EnemyAttack
from .errors import RuleViolation, StateConsistencyError
from .rng import SeededRandom
from .rules.status import armor_bonus, can_perform_action, stat_modifier
from .serialization import as_int, mapping_field, records, strings

if TYPE_CHECKING:
    from .ai import AIBehaviorSystem, AIDecision
    from .state import GameState

__all__ = [
    "COMBAT_STATUSES",
    "VICTORY_EXPERIENCE",
    "AttackRollResult",
    "CombatAction",
    "CombatState",
    "CombatSystem",
    "Participant",
    "attack_roll",
    "flee_probability",
    "weapon_damage",
]

log = logging.getLogger(__name__)

PLAYER_ID = "player"
COMBAT_STATUSES: tuple[str, ...] = ("active", "victory", "defeat", "fled")
VICTORY_EXPERIENCE = 50
LEVEL_UP_HIT_POINTS = 5
DEFEND_REDUCTION = 2
RAGE_PER_HIT = 2
DEFAULT_ATTACK = EnemyAttack(name="Claw", damage_roll="1d4", hit_bonus=2, verb="claws at")


@dataclass(frozen=True)
class AttackRollResult:
    total: int
    roll: int
    is_critical_hit: bool
    is_automatic_miss: bool
    hits: bool


def attack_roll(attacker_bonus: int, target_armor_class: int, *, rng: DiceSource) -> AttackRollResult:
    """Resolve an attack roll; a natural 20 always hits and a natural 1 always misses."""

    roll = roll_d20(rng)
    total = roll + attacker_bonus
    is_critical = roll == 20
    is_automatic_miss = roll == 1
    hits = is_critical or (not is_automatic_miss and total >= target_armor_class)
    return AttackRollResult(
        total=total,
        roll=roll,
        is_critical_hit=is_critical,
        is_automatic_miss=is_automatic_miss,
        hits=hits,
    )


def weapon_damage(character: Character) -> Tuple[str, int]:
    """Return the weapon die and any flat bonus from enchantments."""

    weapon = character.equipment.weapon
    if weapon is None:
        return "1d4", 0
    bonuses = [prop.value for prop in weapon.properties if prop.type == "damage_bonus"]
    if not bonuses:
        return "1d4", 0
    return f"1d{max(1, bonuses[0])}", sum(bonuses[1:])


def flee_probability(dex_modifier: int, enemy_count: int) -> float:
    chance = 0.5 + dex_modifier * 0.1 - (enemy_count - 1) * 0.1
    return max(0.1, min(0.9, chance))


def _tick_effects(effects: List[StatusEffect]) -> List[StatusEffect]:
    remaining = []
    for effect in effects:
        effect.duration -= 1
        if effect.duration > 0:
            remaining.append(effect)
    return remaining


def _damage_reduction(effects: Sequence[StatusEffect]) -> int:
    return sum(effect.damage_reduction for effect in effects if effect.type == "defending")


@dataclass
class CombatAction:
    actor: str
    action: str
    description: str
    target: str | None = None
    damage: int = 0
    healing: int = 0


@dataclass
class Participant:
    id: str
    name: str
    kind: str
    initiative: int
    is_active: bool = True
    status_effects: List[StatusEffect] = field(default_factory=list)
    enemy_index: int | None = None
    cooldowns: Dict[str, int] = field(default_factory=dict)

    @property
    def is_player(self) -> bool:
        return self.kind == "player"

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "initiative": self.initiative,
            "is_active": self.is_active,
            "status_effects": [effect.to_dict() for effect in self.status_effects],
            "enemy_index": self.enemy_index,
            "cooldowns": dict(self.cooldowns),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Participant":
        index = data.get("enemy_index")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            kind=str(data.get("kind", "enemy")),
            initiative=int(data.get("initiative", 0)),
            is_active=bool(data.get("is_active", True)),
            status_effects=records(data, "status_effects", StatusEffect.from_dict),
            enemy_index=int(index) if index is not None else None,
            cooldowns={str(k): as_int(v, f"cooldowns.{k}") for k, v in mapping_field(data, "cooldowns").items()},
        )


@dataclass
class CombatState:
    """Snapshot of an encounter in progress.

    ``enemies`` holds working copies of the room's enemies; the engine writes
    the survivors back to the room once the fight ends.
    """

    participants: List[Participant]
    turn_order: List[str]
    enemies: List[Enemy]
    current_turn_index: int = 0
    round: int = 1
    log: List[str] = field(default_factory=list)
    status: str = "active"

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def participant(self, participant_id: str) -> Participant:
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        raise StateConsistencyError(f"No combat participant '{participant_id}'")

    @property
    def player(self) -> Participant:
        return self.participant(PLAYER_ID)

    @property
    def current(self) -> Participant:
        return self.participant(self.turn_order[self.current_turn_index])

    def enemy_for(self, participant: Participant) -> Enemy:
        if participant.enemy_index is None:
            raise StateConsistencyError(f"Participant '{participant.id}' is not an enemy")
        return self.enemies[participant.enemy_index]

    def active_enemies(self) -> List[Participant]:
        return [p for p in self.participants if not p.is_player and p.is_active]

    def find_target(self, text: str | None = None) -> Optional[Participant]:
        candidates = self.active_enemies()
        if text:
            needle = text.strip().lower()
            for participant in candidates:
                if needle in participant.name.lower() or needle == participant.id:
                    return participant
            return None
        return candidates[0] if candidates else None

    def survivors(self) -> List[Enemy]:
        """Enemies still standing and still in the fight."""

        return [self.enemy_for(p) for p in self.active_enemies() if self.enemy_for(p).is_alive]

    def defeated(self) -> List[Enemy]:
        return [enemy for enemy in self.enemies if not enemy.is_alive]

    def to_dict(self) -> Dict[str, object]:
        return {
            "participants": [participant.to_dict() for participant in self.participants],
            "turn_order": list(self.turn_order),
            "enemies": [enemy.to_dict() for enemy in self.enemies],
            "current_turn_index": self.current_turn_index,
            "round": self.round,
            "log": list(self.log),
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "CombatState":
        status = str(data.get("status", "active"))
        if status not in COMBAT_STATUSES:
            raise ValueError(f"Unknown combat status '{status}'")
        return cls(
            participants=records(data, "participants", Participant.from_dict),
            turn_order=strings(data, "turn_order"),
            enemies=records(data, "enemies", Enemy.from_dict),
            current_turn_index=int(data.get("current_turn_index", 0)),
            round=int(data.get("round", 1)),
            log=strings(data, "log"),
            status=status,
        )


class CombatSystem:
    """Resolve initiative, attacks, fleeing and enemy turns."""

    def __init__(self, rng: SeededRandom, *, ai: "AIBehaviorSystem | None" = None) -> None:
        self.rng = rng
        self.ai = ai

    # -- setup -------------------------------------------------------------
    def initiate_combat(self, character: Character, enemies: Sequence[Enemy]) -> CombatState:
        copies = [Enemy.from_dict(enemy.to_dict()) for enemy in enemies]
        participants = [
            Participant(
                id=PLAYER_ID,
                name=character.name,
                kind="player",
                initiative=roll_d20(self.rng) + character.modifier("DEX"),
                is_active=character.is_alive,
            )
        ]
        for index, enemy in enumerate(copies):
            participants.append(
                Participant(
                    id=f"enemy-{index}",
                    name=enemy.name,
                    kind="enemy",
                    initiative=roll_d20(self.rng) + enemy.modifier("DEX"),
                    is_active=enemy.is_alive,
                    enemy_index=index,
                )
            )
        # sorted() is stable, so ties keep the player first and enemies in room order.
        order = sorted(participants, key=lambda participant: -participant.initiative)
        log.debug("Combat started against %s", ", ".join(enemy.name for enemy in copies))
        return CombatState(
            participants=participants,
            turn_order=[participant.id for participant in order],
            enemies=copies,
        )

    # -- player actions ----------------------------------------------------
    def _begin_player_turn(self, state: CombatState) -> Participant:
        if not state.is_active:
            raise RuleViolation("The fight is already over.")
        player = state.player
        if state.current.id != player.id:
            raise StateConsistencyError("It is not the player's turn")
        player.status_effects = _tick_effects(player.status_effects)
        return player

    def player_attack(self, state: CombatState, character: Character, target_id: str | None = None) -> CombatAction:
        player = self._begin_player_turn(state)
        target = state.find_target(target_id)
        if target is None:
            if target_id:
                raise RuleViolation(f"There is no '{target_id}' to attack.")
            raise RuleViolation("There are no enemies left to attack.")
        enemy = state.enemy_for(target)
        bonus = character.modifier("STR") + character.proficiency + stat_modifier(character.status_effects, "STR")
        armor_class = enemy.armor_class + armor_bonus(target.status_effects)
        result = attack_roll(bonus, armor_class, rng=self.rng)
        if not result.hits:
            description = f"{character.name} misses {enemy.name}. ({result.total} vs AC {armor_class})"
            return self._record(state, CombatAction(player.id, "attack", description, target=target.id))

        die, flat = weapon_damage(character)
        damage = roll_dice(die, self.rng, critical=result.is_critical_hit) + flat + character.modifier("STR")
        damage = max(0, damage - _damage_reduction(target.status_effects))
        dealt = enemy.take_damage(damage)
        if dealt and "rage" in enemy.resources:
            enemy.resources["rage"] += RAGE_PER_HIT
        critical = " Critical hit!" if result.is_critical_hit else ""
        description = (
            f"{character.name} hits {enemy.name} for {dealt} damage!{critical} ({result.total} vs AC {armor_class})"
        )
        if not enemy.is_alive:
            target.is_active = False
            description += f" {enemy.name} is defeated!"
        return self._record(state, CombatAction(player.id, "attack", description, target=target.id, damage=dealt))

    def player_defend(self, state: CombatState) -> CombatAction:
        player = self._begin_player_turn(state)
        player.status_effects.append(
            StatusEffect(
                type="defending",
                duration=1,
                damage_reduction=DEFEND_REDUCTION,
                description="Braced against incoming blows",
            )
        )
        description = f"{player.name} takes a defensive stance, reducing incoming damage by {DEFEND_REDUCTION}."
        return self._record(state, CombatAction(player.id, "defend", description))

    def player_flee(self, state: CombatState, character: Character) -> CombatAction:
        if not can_perform_action(character, "flee"):
            raise RuleViolation("You are too exhausted to run.")
        player = self._begin_player_turn(state)
        chance = flee_probability(character.modifier("DEX"), len(state.active_enemies()))
        if self.rng.chance(chance):
            state.status = "fled"
            description = f"{player.name} successfully flees from combat!"
        else:
            description = f"{player.name} attempts to flee but fails!"
        return self._record(state, CombatAction(player.id, "flee", description))

    def player_spell(self, state: CombatState, description: str, *, target: Participant | None = None) -> CombatAction:
        """Record a spell cast resolved elsewhere and retire any enemy it killed."""

        player = self._begin_player_turn(state)
        for participant in state.active_enemies():
            if not state.enemy_for(participant).is_alive:
                participant.is_active = False
        return self._record(state, CombatAction(player.id, "cast", description, target=target.id if target else None))

    # -- enemy actions -----------------------------------------------------
    def enemy_turn(self, state: CombatState, participant: Participant, character: Character) -> List[CombatAction]:
        if not participant.is_active:
            return []
        enemy = state.enemy_for(participant)
        participant.status_effects = _tick_effects(participant.status_effects)
        decision = self._decide(state, participant, character)
        action = decision.action if decision is not None else "attack"
        if action == "ability" and decision is not None and decision.ability:
            return [self._enemy_ability(state, participant, enemy, decision.ability, character)]
        if action == "defend":
            participant.status_effects.append(StatusEffect(type="defending", duration=1, damage_reduction=DEFEND_REDUCTION))
            return [self._record(state, CombatAction(participant.id, "defend", f"{enemy.name} raises its guard."))]
        if action == "flee":
            participant.is_active = False
            return [self._record(state, CombatAction(participant.id, "flee", f"{enemy.name} turns and flees!"))]
        return [self._enemy_attack(state, participant, enemy, character)]

    def _decide(self, state: CombatState, participant: Participant, character: Character) -> "AIDecision | None":
        if self.ai is None:
            return None
        coordinated = self.ai.coordinate_group_actions(state)
        if participant.id in coordinated:
            return coordinated[participant.id]
        return self.ai.decide_action(state, participant, character)

    def _enemy_attack(self, state: CombatState, participant: Participant, enemy: Enemy, character: Character) -> CombatAction:
        attack = self.rng.choose(enemy.attacks) if enemy.attacks else DEFAULT_ATTACK
        player = state.player
        armor_class = character.armor_class() + armor_bonus(character.status_effects)
        result = attack_roll(attack.hit_bonus, armor_class, rng=self.rng)
        if not result.hits:
            description = f"{enemy.name} {attack.verb} {character.name} but misses!"
            return self._record(state, CombatAction(participant.id, "attack", description, target=player.id))
        damage = roll_dice(attack.damage_roll, self.rng)
        if result.is_critical_hit:
            damage *= 2
        damage = max(0, damage - _damage_reduction(player.status_effects))
        dealt = character.take_damage(damage)
        if not character.is_alive:
            player.is_active = False
        description = f"{enemy.name} {attack.verb} {character.name} for {dealt} damage!"
        if result.is_critical_hit:
            description += " Critical hit!"
        return self._record(state, CombatAction(participant.id, "attack", description, target=player.id, damage=dealt))

    def _enemy_ability(
        self,
        state: CombatState,
        participant: Participant,
        enemy: Enemy,
        ability_key: str,
        character: Character,
    ) -> CombatAction:
        if self.ai is None:
            raise StateConsistencyError("Enemy abilities need an AI behaviour system")
        ability = self.ai.library.abilities.get(ability_key)
        participant.cooldowns[ability.key] = state.round
        for resource, cost in ability.costs.items():
            enemy.resources[resource] = max(0, enemy.resources.get(resource, 0) - cost)
        amount = roll_dice(ability.dice, self.rng) + enemy.level // 3
        if ability.effect == "heal":
            healed = enemy.heal(amount)
            description = f"{enemy.name} {ability.description or 'uses ' + ability.name}, recovering {healed} hit points."
            return self._record(state, CombatAction(participant.id, "ability", description, healing=healed))
        if ability.effect == "buff":
            participant.status_effects.append(StatusEffect(type="protected", duration=2, modifier=2))
            description = f"{enemy.name} {ability.description or 'uses ' + ability.name}."
            return self._record(state, CombatAction(participant.id, "ability", description))
        player = state.player
        damage = max(0, amount - _damage_reduction(player.status_effects))
        dealt = character.take_damage(damage)
        if not character.is_alive:
            player.is_active = False
        description = f"{enemy.name} uses {ability.name}: it {ability.description or 'strikes'} for {dealt} damage!"
        return self._record(
            state, CombatAction(participant.id, "ability", description, target=player.id, damage=dealt)
        )

    # -- turn flow ---------------------------------------------------------
    def advance_turn(self, state: CombatState) -> Participant:
        state.current_turn_index = (state.current_turn_index + 1) % len(state.turn_order)
        if state.current_turn_index == 0:
            state.round += 1
        return state.current

    def run_enemy_turns(self, state: CombatState, character: Character) -> List[CombatAction]:
        """Play enemy turns until it is the player's move or the fight ends."""

        actions: List[CombatAction] = []
        while state.is_active:
            current = state.current
            if current.is_player:
                break
            actions.extend(self.enemy_turn(state, current, character))
            if self.check_combat_end(state) != "active":
                break
            self.advance_turn(state)
        return actions

    def check_combat_end(self, state: CombatState) -> str:
        if not state.is_active:
            return state.status
        if not state.player.is_active:
            state.status = "defeat"
        elif not state.active_enemies():
            state.status = "victory"
        if not state.is_active:
            log.debug("Combat ended with status %s after %d rounds", state.status, state.round)
        return state.status

    # -- outcomes ----------------------------------------------------------
    def award_victory(self, character: Character, *, experience: int = VICTORY_EXPERIENCE) -> List[str]:
        messages = [f"You gained {experience} experience points!"]
        character.experience += experience
        new_level = level_for_experience(character.experience)
        if new_level > character.level:
            character.level = new_level
            character.hp_max += LEVEL_UP_HIT_POINTS
            character.hp_current += LEVEL_UP_HIT_POINTS
            messages.append(f"Level up! You are now level {new_level}! (+{LEVEL_UP_HIT_POINTS} HP)")
        return messages

    def apply_defeat(self, state: "GameState") -> str:
        state.character.hp_current = 1
        state.previous_room_id = None
        state.current_room_id = state.dungeon.entrance_room_id
        return "You awaken back at the dungeon entrance, barely alive..."

    def _record(self, state: CombatState, action: CombatAction) -> CombatAction:
        state.log.append(action.description)
        return action
