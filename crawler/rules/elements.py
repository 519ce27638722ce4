"""Interactive room elements such as levers, fountains and altars."""

from __future__ import annotations

from typing import List, Optional

from crawler.characters import Character, StatusEffect
from crawler.content import ContentLibrary, ElementTemplate
from crawler.dice import roll_dice
from crawler.dungeon.loot import ItemGenerator
from crawler.dungeon.models import OPPOSITE_DIRECTIONS, Dungeon, ElementEffect, InteractiveElement, Room
from crawler.errors import RuleViolation
from crawler.rng import SeededRandom

from .checks import InteractionResult, class_skill_bonus, skill_check
from .status import add_status_effect

__all__ = ["activate_element", "depth_dc", "element_templates_for_room", "generate_element"]

_FALLBACK_ELEMENTS = ("lever", "switch")


def depth_dc(depth: int) -> int:
    return min(20, 10 + depth * 2)


def element_templates_for_room(library: ContentLibrary, room_type: str) -> List[ElementTemplate]:
    matches = [template for template in library.elements if room_type in template.room_types]
    if matches:
        return matches
    return [template for template in library.elements if template.key in _FALLBACK_ELEMENTS]


def generate_element(
    library: ContentLibrary,
    rng: SeededRandom,
    element_id: str,
    room_type: str,
    depth: int,
    *,
    items: Optional[ItemGenerator] = None,
) -> Optional[InteractiveElement]:
    templates = element_templates_for_room(library, room_type)
    if not templates:
        return None
    template = rng.choose(templates)
    difficulty = None
    if template.skill is not None:
        difficulty = max(1, depth_dc(depth) + (template.dc_offset or 0))
    spawn_items = []
    if template.spawn_category and items is not None:
        for _ in range(template.uses or 1):
            spawn_items.append(items.generate_item(template.spawn_category, items.roll_rarity(depth)))
    status = StatusEffect.from_dict(template.status_effect) if template.status_effect else None
    return InteractiveElement(
        id=element_id,
        name=template.name,
        description=template.description,
        type=template.key,
        effect=ElementEffect(
            target=template.effect_target,
            description=template.effect_description,
            heal=template.heal,
            damage=template.damage,
            status_effect=status,
            spawn_items=spawn_items,
            room_effect=template.room_effect,
        ),
        uses_remaining=template.uses,
        requires_item=template.requires_item,
        skill_required=template.skill,
        difficulty_class=difficulty,
        cooldown_turns=template.cooldown,
    )


def _ensure_usable(character: Character, element: InteractiveElement, turn: int) -> None:
    if element.uses_remaining is not None and element.uses_remaining <= 0:
        raise RuleViolation(f"The {element.name} has no more uses.")
    if element.cooldown_turns and element.last_used_turn is not None:
        elapsed = turn - element.last_used_turn
        if elapsed < element.cooldown_turns:
            raise RuleViolation(
                f"The {element.name} is still recharging ({element.cooldown_turns - elapsed} turns remaining)."
            )
    if element.requires_item:
        wanted = element.requires_item.lower()
        if not any(item.id == element.requires_item or item.name.lower() == wanted for item in character.inventory):
            raise RuleViolation(f"You need a specific item to use the {element.name}.")


def activate_element(
    element: InteractiveElement,
    character: Character,
    room: Room,
    dungeon: Dungeon,
    rng: SeededRandom,
    *,
    turn: int,
) -> InteractionResult:
    """Use ``element``; preconditions raise, failed skill checks return a failed result."""

    _ensure_usable(character, element, turn)
    if element.skill_required and element.difficulty_class:
        bonus = class_skill_bonus(character, f"element_{element.skill_required.lower()}")
        check = skill_check(character, element.skill_required, element.difficulty_class, rng, class_bonus=bonus)
        if not check.success:
            return InteractionResult(False, f"{check.describe()} You fail to activate the {element.name}.")
    if element.uses_remaining is not None:
        element.uses_remaining -= 1
    if element.cooldown_turns:
        element.last_used_turn = turn
    element.activated = True
    return _apply_effect(element.effect, character, room, dungeon, rng)


def _apply_effect(
    effect: ElementEffect,
    character: Character,
    room: Room,
    dungeon: Dungeon,
    rng: SeededRandom,
) -> InteractionResult:
    result = InteractionResult(True, effect.description)
    parts = [effect.description]
    if effect.target == "character":
        if effect.status_effect is not None:
            add_status_effect(character, effect.status_effect)
            result.effect_applied = effect.status_effect.type
            parts.append(f"You feel {effect.status_effect.type}.")
        if effect.heal:
            result.healing = character.heal(roll_dice(effect.heal, rng))
            parts.append(f"You are healed for {result.healing} points.")
        if effect.damage:
            result.damage = character.take_damage(roll_dice(effect.damage, rng))
            parts.append(f"You take {result.damage} damage.")
    elif effect.target == "spawn_items":
        if effect.spawn_items:
            found = effect.spawn_items.pop(0)
            room.contents.items.append(found)
            result.items_found.append(found)
            parts.append(f"{found.name} appears.")
        else:
            parts.append("There is nothing more to find.")
    elif effect.target == "room":
        parts.append(_apply_room_effect(effect.room_effect, room, dungeon))
    elif effect.target == "door":
        unlocked = 0
        for _, lock in room.active_locks():
            unlocked += dungeon.unlock(lock.id)
        parts.append("The locks on this room's doors release." if unlocked else "You hear mechanical sounds in the distance.")
    elif effect.target == "teleport":
        destination = effect.teleport_destination
        if destination is None or destination not in dungeon:
            candidates = [other.id for other in dungeon if other.id != room.id]
            destination = rng.choose(candidates) if candidates else None
        if destination is None:
            parts.append("The runes flicker and die.")
        else:
            result.teleport_to = destination
            parts.append("Reality bends around you...")
    result.message = " ".join(part for part in parts if part)
    return result


def _apply_room_effect(room_effect: str | None, room: Room, dungeon: Dungeon) -> str:
    if room_effect == "open_passage":
        if not room.hidden_exits:
            return "Nothing else seems to change."
        for direction, target_id in list(room.hidden_exits.items()):
            target = dungeon.get_room(target_id)
            dungeon.connect(room, direction, target)
            target.hidden_exits.pop(OPPOSITE_DIRECTIONS[direction], None)
        revealed = ", ".join(room.hidden_exits)
        room.hidden_exits.clear()
        return f"A new passage leads {revealed}."
    if room_effect == "clear_hazards":
        if not room.hazards:
            return "Nothing else seems to change."
        room.hazards.clear()
        return "The hazards in this room subside."
    return "The room itself seems to change."
