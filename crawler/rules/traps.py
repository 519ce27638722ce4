"""Trap detection, disarming and triggering."""

from __future__ import annotations

from typing import List

from crawler.characters import Character, StatusEffect
from crawler.content import ContentLibrary
from crawler.dice import DiceSource, roll_d20, roll_dice, split_damage
from crawler.dungeon.models import Room, Trap
from crawler.errors import RuleViolation
from crawler.rng import SeededRandom

from .checks import InteractionResult, class_skill_bonus, skill_check
from .status import add_status_effect

__all__ = ["ENTRY_TRAP_TYPES", "check_entry_triggers", "detect_trap", "disarm_trap", "generate_trap", "trigger_trap"]

ENTRY_TRAP_TYPES = ("pit", "alarm")


def generate_trap(library: ContentLibrary, rng: SeededRandom, trap_id: str) -> Trap:
    template = library.traps.random_choice(rng)
    return Trap(
        id=trap_id,
        name=template.name,
        description=template.description,
        type=template.type,
        detection_dc=template.detection_dc,
        disarm_dc=template.disarm_dc,
        damage=template.damage,
        effect=template.effect,
    )


def detect_trap(character: Character, trap: Trap, rng: DiceSource) -> InteractionResult:
    if trap.detected:
        return InteractionResult(True, f"You already know about the {trap.name}.")
    check = skill_check(character, "WIS", trap.detection_dc, rng, class_bonus=class_skill_bonus(character, "detect_traps"))
    if check.success:
        trap.detected = True
        return InteractionResult(True, f"You spot a {trap.name}! {trap.description} {check.describe()}")
    return InteractionResult(False, f"You don't notice anything suspicious. {check.describe()}")


def disarm_trap(character: Character, trap: Trap, rng: DiceSource) -> InteractionResult:
    if not trap.detected:
        raise RuleViolation("You must detect the trap first before attempting to disarm it.")
    if trap.disarmed:
        raise RuleViolation("This trap has already been disarmed.")
    if trap.triggered:
        raise RuleViolation("This trap has already been sprung.")
    check = skill_check(character, "DEX", trap.disarm_dc, rng, class_bonus=class_skill_bonus(character, "disarm_trap"))
    if check.success:
        trap.disarmed = True
        return InteractionResult(True, f"Successfully disarmed the {trap.name}! {check.describe()}")
    if check.natural_one:
        return trigger_trap(character, trap, rng)
    return InteractionResult(
        False,
        f"Failed to disarm the trap. {check.describe()} Be careful - one wrong move could trigger it!",
    )


def trigger_trap(character: Character, trap: Trap, rng: DiceSource) -> InteractionResult:
    """Spring ``trap`` on ``character``; hit points never drop below zero."""

    if not trap.is_armed:
        return InteractionResult(False, "This trap has already been triggered or disarmed.")
    trap.triggered = True
    parts = [f"The {trap.name} triggers!"]
    dealt = 0
    if trap.damage:
        expression, damage_type = split_damage(trap.damage)
        dealt = character.take_damage(roll_dice(expression, rng))
        parts.append(f"You take {dealt} {damage_type + ' ' if damage_type else ''}damage!")
    effect_applied = None
    if trap.effect == "poison":
        add_status_effect(character, StatusEffect("poisoned", 3, description="Poisoned"))
        effect_applied = "poisoned"
        parts.append("You feel sick from the poison!")
    elif trap.effect == "paralysis":
        add_status_effect(character, StatusEffect("slowed", 2, description="Paralysed"))
        effect_applied = "slowed"
        parts.append("Your muscles seize up!")
    elif trap.effect == "alarm":
        parts.append("A loud alarm echoes through the dungeon!")
    elif trap.effect == "teleport":
        parts.append("The world twists around you for a moment.")
    return InteractionResult(False, " ".join(parts), damage=dealt, effect_applied=effect_applied)


def check_entry_triggers(character: Character, room: Room, rng: DiceSource) -> List[InteractionResult]:
    results: List[InteractionResult] = []
    for trap in room.traps:
        if not trap.is_armed or trap.detected or trap.type not in ENTRY_TRAP_TYPES:
            continue
        if roll_d20(rng) + character.modifier("DEX") < trap.detection_dc:
            results.append(trigger_trap(character, trap, rng))
    return results
