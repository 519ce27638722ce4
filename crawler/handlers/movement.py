"""Moving between rooms."""

from __future__ import annotations

import logging
from typing import Dict

from crawler.commands import Command, CommandResult
from crawler.errors import RuleViolation, UserInputError
from crawler.narration import describe_room
from crawler.state import GameState

from .base import Handler, Route

__all__ = ["MovementHandler"]

log = logging.getLogger(__name__)


class MovementHandler(Handler):
    def routes(self) -> Dict[str, Route]:
        return {"move": self.move}

    def move(self, command: Command, state: GameState) -> CommandResult:
        direction = command.direction
        if direction is None:
            raise UserInputError("Which direction?")
        if state.in_combat:
            raise RuleViolation("You can't just walk away from a fight! Try to flee instead.")
        room = state.current_room
        target_id = room.exits.get(direction)
        if target_id is None:
            raise RuleViolation(f"You cannot go {direction}.")
        if room.lock_for(direction) is not None:
            raise RuleViolation(f"The {direction} exit is locked.")
        if room.contents.living_enemies:
            raise RuleViolation("Enemies block your way!")
        destination = state.move_to(target_id)
        log.debug("Moved %s from %s to %s", direction, room.id, destination.id)
        return CommandResult(True, f"You go {direction}.\n\n{describe_room(destination)}", "description", moved=True)
