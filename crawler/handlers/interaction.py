"""Looking around and dealing with locks, traps, puzzles and room objects."""

from __future__ import annotations

import logging
from typing import Dict, Tuple

from crawler.commands import HELP_TEXT, Command, CommandResult
from crawler.dungeon.models import Lock, Room, Trap
from crawler.errors import RuleViolation, UserInputError
from crawler.narration import describe_room
from crawler.rules import activate_element, attempt_puzzle, detect_trap, disarm_trap, pick_lock
from crawler.state import GameState

from .base import Handler, Route, find_named, item_names, require_target

__all__ = ["REST_FRACTION", "InteractionHandler", "health_description"]

log = logging.getLogger(__name__)

REST_FRACTION = 0.25


def health_description(current: int, maximum: int) -> str:
    if current >= maximum:
        return "uninjured"
    ratio = current / maximum if maximum else 0
    if ratio > 0.5:
        return "lightly wounded"
    if ratio > 0.25:
        return "wounded"
    return "heavily wounded"


class InteractionHandler(Handler):
    def routes(self) -> Dict[str, Route]:
        return {
            "look": self.look,
            "search": self.search,
            "examine": self.examine,
            "pick_lock": self.pick_lock,
            "detect_traps": self.detect_traps,
            "disarm_trap": self.disarm,
            "solve_puzzle": self.solve,
            "activate": self.activate,
            "pull": self.activate,
            "push": self.activate,
            "touch": self.activate,
            "rest": self.rest,
            "wait": self.wait,
            "help": self.help,
        }

    # -- observation -------------------------------------------------------
    def look(self, command: Command, state: GameState) -> CommandResult:
        room = state.current_room
        room.visited = True
        return CommandResult(True, describe_room(room), "description")

    def search(self, command: Command, state: GameState) -> CommandResult:
        room = state.current_room
        room.contents.searched = True
        parts = ["You search the room carefully."]
        found_any = False
        for feature in room.contents.features:
            if feature.searched:
                continue
            feature.searched = True
            if feature.hidden_items:
                found_any = True
                parts.append(f"You find hidden items in the {feature.name}: {item_names(feature.hidden_items)}.")
                room.contents.items.extend(feature.hidden_items)
                feature.hidden_items = []
        if not found_any:
            parts.append("You don't find anything new.")
        return CommandResult(True, " ".join(parts))

    def examine(self, command: Command, state: GameState) -> CommandResult:
        target = require_target(command, "What do you want to examine?")
        room = state.current_room
        character = state.character

        item = find_named(room.contents.items, target, lambda entry: entry.name)
        item = item or character.find_inventory_item(target)
        item = item or find_named(character.equipment.equipped(), target, lambda entry: entry.name)
        if item is not None:
            return CommandResult(True, f"{item.name}: {item.description or 'Nothing remarkable.'}", "description")

        enemy = find_named(room.contents.living_enemies, target, lambda entry: entry.name)
        if enemy is not None:
            health = health_description(enemy.hp_current, enemy.hp_max)
            text = f"{enemy.name} (level {enemy.level}) looks {health}."
            if enemy.description:
                text = f"{enemy.description} {text}"
            return CommandResult(True, text, "description")

        feature = find_named(room.contents.features, target, lambda entry: entry.name)
        if feature is not None:
            return CommandResult(True, f"{feature.name}: {feature.description}", "description")

        element = find_named(room.interactive_elements, target, lambda entry: entry.name)
        if element is not None:
            return CommandResult(True, f"{element.name}: {element.description}", "description")

        puzzle = find_named(room.puzzles, target, lambda entry: entry.name)
        if puzzle is not None:
            status = "It has been solved." if puzzle.solved else "It awaits an answer."
            return CommandResult(True, f"{puzzle.name}: {puzzle.description} {status}", "description")

        trap = find_named((trap for trap in room.traps if trap.detected), target, lambda entry: entry.name)
        if trap is not None:
            return CommandResult(True, f"{trap.name}: {trap.description}", "description")

        raise UserInputError(f"You don't see a {target} here.")

    # -- obstacles ---------------------------------------------------------
    def pick_lock(self, command: Command, state: GameState) -> CommandResult:
        room = state.current_room
        direction, lock = self._select_lock(room, command)
        result = pick_lock(state.character, lock, self.rng)
        if result.success:
            state.dungeon.unlock(lock.id)
            return CommandResult(True, f"{result.message} The {direction} exit is now open.")
        return CommandResult(False, result.message)

    def _select_lock(self, room: Room, command: Command) -> Tuple[str, Lock]:
        locks = room.active_locks()
        if not locks:
            raise RuleViolation("There are no locked doors here.")
        target = command.target.strip().lower()
        if not target:
            if len(locks) > 1:
                directions = ", ".join(direction for direction, _ in locks)
                raise UserInputError(f"Which lock? Locked exits: {directions}.")
            return locks[0]
        for direction, lock in locks:
            if target in (direction, command.direction, lock.type):
                return direction, lock
        raise UserInputError(f"There is no locked {target} exit here.")

    def detect_traps(self, command: Command, state: GameState) -> CommandResult:
        room = state.current_room
        hidden = [trap for trap in room.traps if trap.is_armed and not trap.detected]
        if not hidden:
            return CommandResult(True, "You carefully search for traps but find nothing new.")
        messages = [detect_trap(state.character, trap, self.rng).message for trap in hidden]
        found = any(trap.detected for trap in hidden)
        return CommandResult(found, " ".join(messages))

    def disarm(self, command: Command, state: GameState) -> CommandResult:
        trap = self._select_trap(state.current_room, command.target)
        result = disarm_trap(state.character, trap, self.rng)
        return CommandResult(result.success, result.message)

    def _select_trap(self, room: Room, target: str) -> Trap:
        detected = [trap for trap in room.traps if trap.detected and trap.is_armed]
        if target:
            trap = find_named(room.traps, target, lambda entry: entry.name)
            if trap is None or not trap.detected:
                raise UserInputError(f"You don't know of any {target} here.")
            return trap
        if not detected:
            raise RuleViolation("You don't know of any traps here. Try detecting them first.")
        return detected[0]

    def solve(self, command: Command, state: GameState) -> CommandResult:
        room = state.current_room
        puzzle = next((entry for entry in room.puzzles if not entry.solved), None)
        if puzzle is None:
            raise RuleViolation("There is no puzzle to solve here.")
        answer = require_target(command, f"What is your answer to the {puzzle.name}?")
        result = attempt_puzzle(puzzle, answer, self.rng)
        if result.items_found:
            room.contents.items.extend(result.items_found)
        return CommandResult(result.success, result.message)

    # -- room objects ------------------------------------------------------
    def activate(self, command: Command, state: GameState) -> CommandResult:
        verb = command.action
        target = require_target(command, f"What do you want to {verb}?")
        if state.in_combat:
            raise RuleViolation("You can't do that during combat!")
        room = state.current_room
        element = find_named(room.interactive_elements, target, lambda entry: entry.name)
        if element is None:
            feature = find_named(room.contents.features, target, lambda entry: entry.name)
            if feature is not None:
                return CommandResult(True, f"You {verb} the {feature.name}. {feature.description}")
            raise UserInputError(f"You don't see a {target} here.")
        result = activate_element(
            element,
            state.character,
            room,
            state.dungeon,
            self.rng,
            turn=state.turn_count,
        )
        message = f"You {verb} the {element.name}. {result.message}"
        if result.teleport_to:
            destination = state.move_to(result.teleport_to)
            log.debug("Element %s teleported the player to %s", element.id, destination.id)
            return CommandResult(True, f"{message}\n\n{describe_room(destination)}", moved=True)
        return CommandResult(result.success, message)

    # -- downtime ----------------------------------------------------------
    def rest(self, command: Command, state: GameState) -> CommandResult:
        if state.in_combat:
            raise RuleViolation("You cannot rest during combat!")
        if state.current_room.contents.living_enemies:
            raise RuleViolation("You cannot rest with enemies nearby!")
        character = state.character
        healed = character.heal(int(character.hp_max * REST_FRACTION))
        parts = [f"You rest and recover {healed} health."]
        if character.mana_max is not None:
            restored = character.restore_mana(int(character.mana_max * REST_FRACTION))
            parts.append(f"You also restore {restored} mana.")
        return CommandResult(True, " ".join(parts))

    def wait(self, command: Command, state: GameState) -> CommandResult:
        return CommandResult(True, "You wait for a moment.")

    def help(self, command: Command, state: GameState) -> CommandResult:
        return CommandResult(True, HELP_TEXT, "system")
