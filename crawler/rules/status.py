"""Timed status effects on characters."""

from __future__ import annotations

from typing import List, Mapping, Sequence

from crawler.characters import Character, StatusEffect

__all__ = [
    "EXPIRY_MESSAGES",
    "STATUS_TYPES",
    "add_status_effect",
    "armor_bonus",
    "can_perform_action",
    "has_status_effect",
    "remove_status_effect",
    "stat_modifier",
    "tick_status_effects",
]

STATUS_TYPES: tuple[str, ...] = (
    "blessed",
    "cursed",
    "energized",
    "exhausted",
    "blinded",
    "slowed",
    "protected",
    "poisoned",
    "defending",
)

EXPIRY_MESSAGES: Mapping[str, str] = {
    "blessed": "Your blessing fades away.",
    "cursed": "The curse lifts from you.",
    "energized": "Your energy boost wears off.",
    "exhausted": "You feel refreshed as your exhaustion fades.",
    "blinded": "Your vision clears.",
    "slowed": "You can move at normal speed again.",
    "protected": "Your protective ward dissipates.",
    "poisoned": "The poison works its way out of your system.",
}

# Default penalties or bonuses when an effect carries no explicit modifier.
_DEFAULT_MODIFIERS: Mapping[str, int] = {"blessed": 2, "cursed": -2, "exhausted": -3, "energized": 2, "poisoned": -1, "slowed": -2}
_AFFECTED_ABILITIES: Mapping[str, tuple[str, ...]] = {
    "exhausted": ("STR", "DEX"),
    "energized": ("INT", "CHA"),
    "poisoned": ("STR", "CON"),
    "slowed": ("DEX",),
}
_BLOCKED_ACTIONS: Mapping[str, tuple[str, ...]] = {
    "blinded": ("cast",),
    "exhausted": ("flee",),
}


def has_status_effect(character: Character, effect_type: str) -> bool:
    return any(effect.type == effect_type for effect in character.status_effects)


def add_status_effect(character: Character, effect: StatusEffect) -> StatusEffect:
    """Apply ``effect``; an existing effect of the same type is refreshed instead."""

    for existing in character.status_effects:
        if existing.type == effect.type:
            existing.duration = max(existing.duration, effect.duration)
            if abs(effect.modifier) > abs(existing.modifier):
                existing.modifier = effect.modifier
            return existing
    applied = StatusEffect(
        type=effect.type,
        duration=effect.duration,
        modifier=effect.modifier,
        damage_reduction=effect.damage_reduction,
        description=effect.description,
    )
    character.status_effects.append(applied)
    return applied


def remove_status_effect(character: Character, effect_type: str) -> bool:
    before = len(character.status_effects)
    character.status_effects = [effect for effect in character.status_effects if effect.type != effect_type]
    return len(character.status_effects) < before


def stat_modifier(effects: Sequence[StatusEffect], ability: str) -> int:
    total = 0
    upper = ability.upper()
    for effect in effects:
        affected = _AFFECTED_ABILITIES.get(effect.type)
        if affected is not None and upper not in affected:
            continue
        if effect.type in _DEFAULT_MODIFIERS:
            total += effect.modifier or _DEFAULT_MODIFIERS[effect.type]
    return total


def armor_bonus(effects: Sequence[StatusEffect]) -> int:
    return sum(effect.modifier for effect in effects if effect.type == "protected")


def can_perform_action(character: Character, action: str) -> bool:
    for effect in character.status_effects:
        if action in _BLOCKED_ACTIONS.get(effect.type, ()):
            return False
    return True


def tick_status_effects(character: Character) -> List[str]:
    """Advance every effect by one turn and return the resulting messages."""

    messages: List[str] = []
    remaining: List[StatusEffect] = []
    for effect in character.status_effects:
        effect.duration -= 1
        if effect.duration > 0:
            if effect.type == "energized" and character.restore_mana(1):
                messages.append("Your energized state restores 1 mana.")
            elif effect.type == "poisoned" and character.hp_current > 1:
                character.take_damage(1)
                messages.append("The poison burns in your veins. You take 1 damage.")
            remaining.append(effect)
            continue
        message = EXPIRY_MESSAGES.get(effect.type)
        if message:
            messages.append(message)
    character.status_effects = remaining
    return messages
