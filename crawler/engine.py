"""Turn loop tying the parser, handlers, rules and combat together."""

from __future__ import annotations

import copy
import logging
import time
from typing import Callable, List, Mapping

from .ai import AIBehaviorSystem
from .characters import AVAILABLE_CLASSES, Character, create_character
from .combat import CombatAction, CombatSystem
from .commands import CommandResult, parse_command
from .content import ContentLibrary
from .dungeon.generator import DEFAULT_ROOM_BUDGET, DungeonGenerator
from .dungeon.loot import ItemGenerator
from .dungeon.models import Enemy
from .errors import RuleViolation, StateConsistencyError, UserInputError
from .handlers import CommandProcessor, HandlerContext
from .magic import MagicSystem
from .narration import describe_room
from .rng import SeededRandom, SeedLike
from .rules import check_entry_triggers, process_hazards, tick_status_effects
from .state import GameState

__all__ = ["GameEngine", "new_character"]

DEFAULT_NAME = "Adventurer"
DEFAULT_CLASS = "fighter"


def new_character(
    library: ContentLibrary,
    name: str = DEFAULT_NAME,
    class_key: str = DEFAULT_CLASS,
    *,
    ability_scores: Mapping[str, int] | None = None,
) -> Character:
    """Create a level one character wearing its class's starting gear."""

    character_class = AVAILABLE_CLASSES.get(class_key.strip().lower())
    starting_equipment = character_class.starting_equipment if character_class else ()
    # Template items are built without drawing from the generator.
    items = ItemGenerator(library, SeededRandom(0), id_prefix="starter")
    gear = [items.from_template(key) for key in starting_equipment if key in library.items]
    return create_character(name, class_key, ability_scores=ability_scores, starting_items=gear)


class GameEngine:
    """Owns the rules for advancing a :class:`GameState` one command at a time.

    ``process_command`` never mutates the state it is given except to append
    an error message: the command runs against a deep copy that is only
    returned when every step succeeded.
    """

    def __init__(
        self,
        library: ContentLibrary | None = None,
        *,
        seed: SeedLike = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.library = library or ContentLibrary.load_default()
        self.seed = seed
        self.log = logger or logging.getLogger(__name__)
        self.clock = clock or time.time

    # -- setup -------------------------------------------------------------
    def start_new_game(
        self,
        character: Character | None = None,
        *,
        room_budget: int = DEFAULT_ROOM_BUDGET,
    ) -> GameState:
        rng = SeededRandom(self.seed)
        dungeon = DungeonGenerator(self.library, rng=rng).generate(room_budget)
        character = character or new_character(self.library)
        state = GameState(
            character=character,
            dungeon=dungeon,
            current_room_id=dungeon.entrance_room_id,
            rng_state=rng.state,
        )
        state.current_room.visited = True
        self.log.info("Started %s for %s with %d rooms", dungeon.id, character.name, len(dungeon))
        self.add_message(state, f"Welcome to the dungeon, {character.name}!", "system")
        self.add_message(state, "Type 'help' for a list of commands.", "system")
        self.add_message(state, self.describe_room(state), "description")
        return state

    def add_message(self, state: GameState, text: str, message_type: str = "system") -> None:
        state.add_message(text, message_type, timestamp=self.clock())

    def describe_room(self, state: GameState) -> str:
        room = state.current_room
        room.visited = True
        return describe_room(room)

    def _systems(self, state: GameState) -> tuple[SeededRandom, CombatSystem, CommandProcessor]:
        if state.rng_state is None:
            rng = SeededRandom(state.dungeon.seed)
        else:
            rng = SeededRandom.from_state(state.dungeon.seed, state.rng_state)
        combat = CombatSystem(rng, ai=AIBehaviorSystem(self.library, rng))
        context = HandlerContext(library=self.library, rng=rng, combat=combat, magic=MagicSystem(self.library, rng))
        return rng, combat, CommandProcessor(context)

    # -- turn loop ---------------------------------------------------------
    def process_command(self, state: GameState, text: str) -> GameState:
        working = copy.deepcopy(state)
        rng, combat, processor = self._systems(working)
        try:
            command = parse_command(text)
            result = processor.execute(command, working)
            working.turn_count += 1
            if result.message:
                self.add_message(working, result.message, result.message_type)
            self._after_action(working, result, rng, combat)
        except UserInputError as exc:
            self.add_message(state, str(exc), "error")
            return state
        except RuleViolation as exc:
            self.add_message(state, str(exc), "action")
            return state
        except StateConsistencyError:
            self.log.exception("Inconsistent game state while processing %r", text)
            self.add_message(state, "Something went wrong. That action could not be completed.", "error")
            return state
        working.rng_state = rng.state
        return working

    def _after_action(self, state: GameState, result: CommandResult, rng: SeededRandom, combat: CombatSystem) -> None:
        character = state.character
        room = state.current_room
        if result.moved:
            for outcome in check_entry_triggers(character, room, rng):
                self.add_message(state, outcome.message, "action")
        for outcome in process_hazards(character, room, rng, moved=result.moved):
            self.add_message(state, outcome.message, "action")
        for message in tick_status_effects(character):
            self.add_message(state, message, "system")

        if state.combat is not None:
            if not character.is_alive:
                state.combat.player.is_active = False
            if result.combat_action and combat.check_combat_end(state.combat) == "active":
                combat.advance_turn(state.combat)
                self._report(state, combat.run_enemy_turns(state.combat, character))
            status = combat.check_combat_end(state.combat)
            if status != "active":
                self._finish_combat(state, status, combat)
            return

        if not character.is_alive:
            self._defeat(state, combat)
            return
        enemies = state.current_room.contents.living_enemies
        if enemies:
            self._start_combat(state, enemies, combat)

    # -- combat ------------------------------------------------------------
    def _start_combat(self, state: GameState, enemies: List[Enemy], combat: CombatSystem) -> None:
        encounter = combat.initiate_combat(state.character, enemies)
        state.combat = encounter
        self.log.debug("Combat started in %s against %d enemies", state.current_room_id, len(enemies))
        self.add_message(state, "Combat begins!", "combat")
        self.add_message(state, f"You face: {', '.join(enemy.name for enemy in encounter.enemies)}", "combat")
        self._report(state, combat.run_enemy_turns(encounter, state.character))
        status = combat.check_combat_end(encounter)
        if status != "active":
            self._finish_combat(state, status, combat)

    def _report(self, state: GameState, actions: List[CombatAction]) -> None:
        for action in actions:
            self.add_message(state, action.description, "combat")

    def _finish_combat(self, state: GameState, status: str, combat: CombatSystem) -> None:
        encounter = state.combat
        if encounter is None:
            raise StateConsistencyError("No combat to finish")
        room = state.current_room
        character = state.character
        for enemy in encounter.defeated():
            room.contents.items.extend(enemy.loot.items)
            character.gold += enemy.loot.gold
        room.contents.enemies = encounter.survivors()
        state.combat = None
        self.log.debug("Combat in %s ended: %s", room.id, status)

        if status == "victory":
            self.add_message(state, "Victory! You have defeated all enemies!", "combat")
            for message in combat.award_victory(character):
                self.add_message(state, message, "system")
        elif status == "defeat":
            self._defeat(state, combat)
        elif status == "fled":
            self.add_message(state, "You successfully fled from combat.", "combat")
            destination = state.previous_room_id or state.dungeon.entrance_room_id
            if destination != state.current_room_id:
                state.move_to(destination)
            self.add_message(state, self.describe_room(state), "description")

    def _defeat(self, state: GameState, combat: CombatSystem) -> None:
        self.add_message(state, "You have been defeated...", "combat")
        self.add_message(state, combat.apply_defeat(state), "system")
        self.add_message(state, self.describe_room(state), "description")
