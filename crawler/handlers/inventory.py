"""Inventory and equipment commands."""

from __future__ import annotations

import logging
from typing import Dict, List

from crawler.characters import EQUIPMENT_SLOTS, INVENTORY_CAPACITY, Character, Item
from crawler.commands import Command, CommandResult
from crawler.errors import RuleViolation, UserInputError
from crawler.rules import use_key
from crawler.state import GameState

from .base import Handler, HandlerContext, Route, find_named, require_target
from .interaction import InteractionHandler

__all__ = ["InventoryHandler", "apply_hp_bonus"]

log = logging.getLogger(__name__)


def apply_hp_bonus(character: Character, item: Item, *, sign: int) -> int:
    """Add (``sign=1``) or remove (``sign=-1``) an item's maximum hit point bonus."""

    bonus = item.property_total("hp_bonus") * sign
    if not bonus:
        return 0
    character.hp_max = max(1, character.hp_max + bonus)
    if bonus > 0:
        character.hp_current += bonus
    character.hp_current = max(1, min(character.hp_current, character.hp_max))
    return bonus


def _describe_item(item: Item) -> str:
    text = f"{item.name} ({item.rarity} {item.item_type})"
    bonuses = [
        f"{prop.type.replace('_', ' ')}{' ' + prop.stat if prop.stat else ''} {prop.value:+d}"
        for prop in item.properties
    ]
    return f"{text}: {', '.join(bonuses)}" if bonuses else text


class InventoryHandler(Handler):
    def __init__(self, context: HandlerContext, interaction: InteractionHandler) -> None:
        super().__init__(context)
        self.interaction = interaction

    def routes(self) -> Dict[str, Route]:
        return {
            "inventory": self.inventory,
            "get": self.get,
            "drop": self.drop,
            "equip": self.equip,
            "unequip": self.unequip,
            "use": self.use,
        }

    def inventory(self, command: Command, state: GameState) -> CommandResult:
        character = state.character
        lines = [f"Inventory ({len(character.inventory)}/{INVENTORY_CAPACITY}):"]
        if character.inventory:
            lines.extend(f"  {_describe_item(item)}" for item in character.inventory)
        else:
            lines.append("  (empty)")
        lines.append("Equipped:")
        for slot in EQUIPMENT_SLOTS:
            item = character.equipment.get(slot)
            lines.append(f"  {slot.title()}: {item.name if item else '-'}")
        lines.append(f"Gold: {character.gold}")
        return CommandResult(True, "\n".join(lines), "system")

    def get(self, command: Command, state: GameState) -> CommandResult:
        target = require_target(command, "What do you want to take?")
        room = state.current_room
        item = find_named(room.contents.items, target, lambda entry: entry.name)
        if item is None:
            raise UserInputError(f"There is no {target} here.")
        gold = item.property_total("gold")
        if item.item_type == "treasure" and gold:
            room.contents.items.remove(item)
            state.character.gold += gold
            return CommandResult(True, f"You pick up {gold} gold.")
        if state.character.inventory_full:
            raise RuleViolation("Your inventory is full.")
        room.contents.items.remove(item)
        state.character.inventory.append(item)
        return CommandResult(True, f"You take the {item.name}.")

    def drop(self, command: Command, state: GameState) -> CommandResult:
        target = require_target(command, "What do you want to drop?")
        item = state.character.find_inventory_item(target)
        if item is None:
            raise UserInputError(f"You don't have a {target}.")
        state.character.inventory.remove(item)
        state.current_room.contents.items.append(item)
        return CommandResult(True, f"You drop the {item.name}.")

    def equip(self, command: Command, state: GameState) -> CommandResult:
        target = require_target(command, "What do you want to equip?")
        character = state.character
        item = character.find_inventory_item(target)
        if item is None:
            raise UserInputError(f"You don't have a {target}.")
        if item.slot is None:
            raise RuleViolation(f"You can't equip the {item.name}.")
        character.inventory.remove(item)
        previous = character.equipment.set(item.slot, item)
        if previous is None:
            apply_hp_bonus(character, item, sign=1)
            return CommandResult(True, f"You equip the {item.name}.")
        apply_hp_bonus(character, previous, sign=-1)
        apply_hp_bonus(character, item, sign=1)
        # The new item just left the pack, so the old one always fits.
        character.inventory.append(previous)
        return CommandResult(True, f"You unequip the {previous.name} and equip the {item.name}.")

    def unequip(self, command: Command, state: GameState) -> CommandResult:
        target = require_target(command, "What do you want to unequip?")
        character = state.character
        if target.lower() in EQUIPMENT_SLOTS:
            item = character.equipment.get(target.lower())
        else:
            item = find_named(character.equipment.equipped(), target, lambda entry: entry.name)
        if item is None or item.slot is None:
            raise UserInputError(f"You don't have a {target} equipped.")
        character.equipment.set(item.slot, None)
        apply_hp_bonus(character, item, sign=-1)
        if character.inventory_full:
            state.current_room.contents.items.append(item)
            return CommandResult(True, f"You unequip the {item.name} and drop it (inventory full).")
        character.inventory.append(item)
        return CommandResult(True, f"You unequip the {item.name}.")

    def use(self, command: Command, state: GameState) -> CommandResult:
        target = require_target(command, "What do you want to use?")
        character = state.character
        matches = [item for item in character.inventory if item.matches(target)]
        if not matches:
            element = find_named(state.current_room.interactive_elements, target, lambda entry: entry.name)
            if element is not None:
                return self.interaction.activate(command, state)
            raise UserInputError(f"You don't have a {target}.")
        item = matches[0]
        if item.item_type == "key":
            return self._use_key(state, [entry for entry in matches if entry.item_type == "key"])
        if item.item_type == "potion":
            return self._drink(character, item)
        gold = item.property_total("gold")
        if gold:
            character.inventory.remove(item)
            character.gold += gold
            return CommandResult(True, f"You add {gold} gold to your purse.")
        raise RuleViolation(f"You can't use the {item.name} like that.")

    def _drink(self, character: Character, item: Item) -> CommandResult:
        parts = [f"You use the {item.name}."]
        healing = item.property_total("healing")
        if healing:
            parts.append(f"You recover {character.heal(healing)} hit points.")
        mana = item.property_total("mana")
        if mana:
            if not character.has_mana:
                raise RuleViolation("You have no magical energy to restore.")
            parts.append(f"You restore {character.restore_mana(mana)} mana.")
        bonus = item.property_total("hp_bonus")
        if bonus:
            character.hp_max += bonus
            character.hp_current += bonus
            parts.append(f"Your maximum health increases by {bonus}!")
        if len(parts) == 1:
            parts.append("Nothing happens.")
        character.inventory.remove(item)
        return CommandResult(True, " ".join(parts))

    def _use_key(self, state: GameState, keys: List[Item]) -> CommandResult:
        room = state.current_room
        locks = room.active_locks()
        if not locks:
            raise RuleViolation("There is nothing here to unlock.")
        for key in keys:
            for direction, lock in locks:
                if lock.key_id != key.key_id:
                    continue
                result = use_key(state.character, lock, key)
                state.dungeon.unlock(lock.id)
                log.debug("Key %s opened lock %s", key.id, lock.id)
                return CommandResult(True, f"{result.message} The {direction} exit is now open.")
        raise RuleViolation(f"The {keys[0].name} doesn't fit any lock here.")
