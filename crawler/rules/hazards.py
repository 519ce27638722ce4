"""Environmental hazards and their per-turn effects."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Mapping, Optional

from crawler.characters import Character, StatusEffect
from crawler.dice import DiceSource, roll_d20, roll_dice
from crawler.dungeon.models import Hazard, Room
from crawler.rng import SeededRandom

from .checks import InteractionResult
from .status import add_status_effect

__all__ = [
    "HAZARD_TYPES",
    "SAVE_DCS",
    "generate_hazard",
    "hazard_types_for_room",
    "process_hazards",
    "severity_for_depth",
]

HAZARD_TYPES: tuple[str, ...] = (
    "poison_gas",
    "unstable_floor",
    "extreme_cold",
    "extreme_heat",
    "magical_darkness",
    "arcane_storm",
    "flooding",
    "thick_fog",
)
SAVE_DCS: Mapping[str, int] = {"minor": 10, "moderate": 13, "severe": 16, "extreme": 20}
_SEVERITY_MULTIPLIERS: Mapping[str, float] = {"minor": 1, "moderate": 1.5, "severe": 2, "extreme": 3}
_BASE_TYPES = ("poison_gas", "unstable_floor")
_ROOM_HAZARDS: Mapping[str, tuple[str, ...]] = {
    "library": _BASE_TYPES + ("magical_darkness", "arcane_storm"),
    "armory": _BASE_TYPES + ("extreme_cold", "extreme_heat"),
    "chamber": _BASE_TYPES + ("flooding",),
    "throne_room": _BASE_TYPES + ("extreme_heat", "magical_darkness"),
    "treasure_room": ("poison_gas", "arcane_storm", "magical_darkness"),
    "corridor": ("poison_gas", "unstable_floor", "thick_fog"),
}


@dataclass(frozen=True)
class _HazardProfile:
    name: str
    description: str
    dice: Optional[str]
    duration: Optional[int]
    triggered_by_movement: bool = False


def hazard_types_for_room(room_type: str) -> tuple[str, ...]:
    return _ROOM_HAZARDS.get(room_type, _BASE_TYPES)


def severity_for_depth(depth: int) -> str:
    if depth <= 2:
        return "minor"
    if depth <= 4:
        return "moderate"
    if depth <= 6:
        return "severe"
    return "extreme"


def _profile(hazard_type: str, severity: str) -> _HazardProfile:
    multiplier = _SEVERITY_MULTIPLIERS[severity]
    base = math.floor(2 * multiplier)
    label = severity.title()
    if hazard_type == "extreme_heat":
        return _HazardProfile(f"{label} Heat", "Extreme heat radiates from the walls.", f"{base}d4", None)
    if hazard_type == "poison_gas":
        return _HazardProfile(
            f"{label} Poison Gas",
            "Toxic vapours seep from cracks in the ground.",
            f"{max(1, base - 1)}d4",
            5 + math.floor(multiplier * 2),
        )
    if hazard_type == "extreme_cold":
        return _HazardProfile(f"{label} Cold", "An unnatural chill permeates the area.", None, None)
    if hazard_type == "arcane_storm":
        return _HazardProfile(
            f"{label} Arcane Storm",
            "Chaotic magical energy crackles in the air.",
            None,
            3 + math.floor(multiplier * 3),
        )
    if hazard_type == "unstable_floor":
        return _HazardProfile(f"{label} Unstable Floor", "The ground shifts dangerously underfoot.", "2d6", None, True)
    if hazard_type == "magical_darkness":
        return _HazardProfile(f"{label} Darkness", "A supernatural darkness swallows the light.", None, None)
    if hazard_type == "flooding":
        return _HazardProfile(f"{label} Flooding", "Cold water pools ankle-deep across the floor.", None, None)
    return _HazardProfile(f"{label} Fog", "A thick fog hangs in the air, muffling every sound.", None, None)


def generate_hazard(rng: SeededRandom, hazard_id: str, room_type: str, depth: int) -> Hazard:
    hazard_type = rng.choose(hazard_types_for_room(room_type))
    severity = severity_for_depth(depth)
    profile = _profile(hazard_type, severity)
    return Hazard(
        id=hazard_id,
        name=profile.name,
        description=profile.description,
        type=hazard_type,
        severity=severity,
        is_permanent=profile.duration is None,
        duration=profile.duration,
        damage_per_turn=profile.dice,
        triggered_by_movement=profile.triggered_by_movement,
    )


def _save(character: Character, ability: str, hazard: Hazard, rng: DiceSource) -> tuple[bool, str]:
    dc = SAVE_DCS.get(hazard.severity, 10)
    total = roll_d20(rng) + character.modifier(ability)
    return total >= dc, f"(Save: {total} vs DC {dc})"


def _resolve(character: Character, hazard: Hazard, rng: DiceSource) -> Optional[InteractionResult]:
    if hazard.type == "extreme_heat":
        dealt = character.take_damage(roll_dice(hazard.damage_per_turn or "1d4", rng))
        return InteractionResult(False, f"You take {dealt} heat damage from the {hazard.name}!", damage=dealt)
    if hazard.type == "poison_gas":
        dealt = character.take_damage(roll_dice(hazard.damage_per_turn or "1d4", rng))
        saved, detail = _save(character, "CON", hazard, rng)
        if saved:
            return InteractionResult(
                False, f"The {hazard.name} burns your lungs for {dealt} damage, but you resist the poison. {detail}", damage=dealt
            )
        add_status_effect(character, StatusEffect("poisoned", 3, description="Poisoned"))
        return InteractionResult(
            False,
            f"The {hazard.name} burns your lungs for {dealt} damage and poisons you! {detail}",
            damage=dealt,
            effect_applied="poisoned",
        )
    if hazard.type == "extreme_cold":
        saved, detail = _save(character, "CON", hazard, rng)
        if saved:
            return InteractionResult(True, f"You shrug off the {hazard.name}. {detail}")
        add_status_effect(character, StatusEffect("exhausted", 2, description="Chilled to the bone"))
        return InteractionResult(False, f"The {hazard.name} chills you to the bone! {detail}", effect_applied="exhausted")
    if hazard.type == "magical_darkness":
        add_status_effect(character, StatusEffect("blinded", 1, description="Shrouded in darkness"))
        return InteractionResult(False, f"The {hazard.name} blinds you.", effect_applied="blinded")
    if hazard.type == "arcane_storm":
        if character.mana_current:
            drained = min(2, character.mana_current)
            character.mana_current -= drained
            return InteractionResult(False, f"The {hazard.name} drains {drained} mana from you!")
        return InteractionResult(True, f"You feel strange magic from the {hazard.name}.")
    if hazard.type == "flooding":
        return InteractionResult(True, "You wade through the cold water.")
    if hazard.type == "thick_fog":
        return InteractionResult(True, "The fog makes it hard to see more than a few feet.")
    return None


def _resolve_entry(character: Character, hazard: Hazard, rng: DiceSource) -> InteractionResult:
    saved, detail = _save(character, "DEX", hazard, rng)
    if saved:
        return InteractionResult(True, f"You dodge the {hazard.name}! {detail}")
    dealt = character.take_damage(roll_dice(hazard.damage_per_turn or "2d6", rng))
    return InteractionResult(False, f"You take {dealt} falling damage from the {hazard.name}! {detail}", damage=dealt)


def process_hazards(character: Character, room: Room, rng: DiceSource, *, moved: bool = False) -> List[InteractionResult]:
    """Apply every hazard in ``room`` for one turn.

    Movement-triggered hazards only fire when the character has just
    entered the room. Temporary hazards count down and are removed once
    their duration runs out.
    """

    results: List[InteractionResult] = []
    remaining: List[Hazard] = []
    for hazard in room.hazards:
        if hazard.triggered_by_movement:
            if moved:
                results.append(_resolve_entry(character, hazard, rng))
        else:
            result = _resolve(character, hazard, rng)
            if result is not None:
                results.append(result)
        if not hazard.is_permanent and hazard.duration is not None:
            hazard.duration -= 1
            if hazard.duration <= 0:
                results.append(InteractionResult(True, f"The {hazard.name} dissipates."))
                continue
        remaining.append(hazard)
    room.hazards = remaining
    return results
