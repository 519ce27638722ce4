"""Combat commands: attack, defend, flee and spellcasting."""

from __future__ import annotations

from typing import Dict

from crawler.combat import CombatState
from crawler.commands import Command, CommandResult
from crawler.errors import RuleViolation, StateConsistencyError
from crawler.state import GameState

from .base import Handler, Route

__all__ = ["CombatHandler"]


class CombatHandler(Handler):
    def routes(self) -> Dict[str, Route]:
        return {
            "attack": self.attack,
            "defend": self.defend,
            "flee": self.flee,
            "cast": self.cast,
        }

    def _combat(self, state: GameState) -> CombatState:
        combat = state.combat
        if combat is None or not combat.is_active:
            if state.current_room.contents.living_enemies:
                raise StateConsistencyError("Enemies are present but no combat is running")
            raise RuleViolation("You are not in combat.")
        return combat

    def attack(self, command: Command, state: GameState) -> CommandResult:
        combat = self._combat(state)
        action = self.context.combat.player_attack(combat, state.character, command.target or None)
        return CommandResult(True, action.description, "combat", combat_action=True)

    def defend(self, command: Command, state: GameState) -> CommandResult:
        action = self.context.combat.player_defend(self._combat(state))
        return CommandResult(True, action.description, "combat", combat_action=True)

    def flee(self, command: Command, state: GameState) -> CommandResult:
        combat = self._combat(state)
        action = self.context.combat.player_flee(combat, state.character)
        return CommandResult(combat.status == "fled", action.description, "combat", combat_action=True)

    def cast(self, command: Command, state: GameState) -> CommandResult:
        magic = self.context.magic
        if not state.in_combat:
            spell = magic.find_spell(state.character, command.target)
            if spell.effect == "damage":
                raise RuleViolation(f"There is nothing here to target with {spell.name}.")
            result = magic.cast(state.character, command.target)
            return CommandResult(True, result.message)
        combat = self._combat(state)
        if combat.current.id != combat.player.id:
            raise StateConsistencyError("It is not the player's turn")
        targets = [combat.enemy_for(participant) for participant in combat.active_enemies()]
        result = magic.cast(state.character, command.target, targets=targets)
        target = None
        if result.target is not None:
            target = next((p for p in combat.active_enemies() if combat.enemy_for(p) is result.target), None)
        action = self.context.combat.player_spell(combat, result.message, target=target)
        return CommandResult(True, action.description, "combat", combat_action=True)
