"""Terminal front end for the dungeon crawler."""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from crawler.config import Settings, load_settings
from crawler.content import ContentLibrary, ContentLoadError
from crawler.dungeon.map_render import render_dungeon_map
from crawler.engine import GameEngine, new_character
from crawler.narration import RoomNarrator
from crawler.saves import AutoSaveService, FileSaveStorage, SaveSystem
from crawler.state import GameState

META_HELP = "Meta commands: save N, load N, saves, delete N, map [path], narrate, quit"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def load_environment() -> Settings:
    try:
        return load_settings()
    except RuntimeError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}. Check the .env file.") from exc


def load_library(settings: Settings) -> ContentLibrary:
    if settings.content_path is not None:
        return ContentLibrary.load_from_path(settings.content_path)
    return ContentLibrary.load_default()


def print_new_messages(state: GameState, seen: int) -> int:
    for message in state.message_log:
        if int(message.id.split("-", 1)[1]) > seen:
            print(message.text)
            print()
    return state.message_counter


def _slot(argument: str) -> Optional[int]:
    try:
        return int(argument)
    except ValueError:
        return None


class TerminalGame:
    """Read a command per line and feed it to the engine."""

    def __init__(self, settings: Settings, engine: GameEngine, saves: SaveSystem) -> None:
        self.settings = settings
        self.engine = engine
        self.saves = saves
        self.autosave = AutoSaveService(saves, interval=settings.autosave_interval)
        self.narrator = RoomNarrator(timeout=settings.narration_timeout)
        self.state: Optional[GameState] = None
        self.seen = 0

    async def start(self, read_line: Callable[[str], str] = input) -> None:
        name = read_line("Name your adventurer: ").strip() or "Adventurer"
        class_key = read_line("Class (fighter/wizard/rogue/cleric): ").strip().lower() or "fighter"
        try:
            character = new_character(self.engine.library, name, class_key)
        except ValueError as exc:
            print(f"{exc}. Starting as a fighter.")
            character = new_character(self.engine.library, name)
        self.state = self.engine.start_new_game(character, room_budget=self.settings.room_budget)
        self.seen = print_new_messages(self.state, 0)
        print(META_HELP)

        while True:
            try:
                line = read_line("> ").strip()
            except EOFError:
                break
            if not line:
                continue
            if line.lower() in ("quit", "exit"):
                break
            if await self.meta(line):
                continue
            previous = self.state
            self.state = self.engine.process_command(self.state, line)
            self.seen = print_new_messages(self.state, self.seen)
            await self.autosave.after_turn(previous, self.state)

    async def meta(self, line: str) -> bool:
        verb, _, argument = line.partition(" ")
        verb = verb.lower()
        argument = argument.strip()
        slot = _slot(argument)
        state = self.state
        if state is None:
            return False
        if verb == "save" and slot is not None:
            operation = await self.saves.save(state, slot)
            print(operation.message)
            return True
        if verb == "load" and slot is not None:
            operation = await self.saves.load(slot)
            print(operation.message)
            if operation.state is not None:
                self.state = operation.state
                print(self.engine.describe_room(operation.state))
                self.seen = operation.state.message_counter
            return True
        if verb == "saves":
            slots = await self.saves.list_slots()
            if not slots:
                print("No saved games.")
            for meta in slots:
                print(
                    f"[{meta.save_slot}] {meta.name}: {meta.character_name} the {meta.character_class} "
                    f"(level {meta.level}) in {meta.current_room}"
                )
            return True
        if verb == "delete" and slot is not None:
            deleted = await self.saves.delete_slot(slot)
            print("Save deleted." if deleted else "Nothing to delete in that slot.")
            return True
        if verb == "map":
            path = Path(argument or "dungeon_map.png")
            image = render_dungeon_map(state.dungeon, current_room=state.current_room_id, visited_only=True)
            image.save(path)
            print(f"Map written to {path}.")
            return True
        if verb == "narrate":
            print(await self.narrator.describe(state.current_room))
            return True
        return False


async def run(settings: Settings) -> None:
    engine = GameEngine(load_library(settings), seed=settings.seed)
    saves = SaveSystem(FileSaveStorage(settings.save_dir))
    await TerminalGame(settings, engine, saves).start()


def main() -> None:
    settings = load_environment()
    configure_logging(settings.log_level)
    try:
        asyncio.run(run(settings))
    except ContentLoadError as exc:
        logging.error("Could not load game content: %s", exc)
    except KeyboardInterrupt:
        logging.info("Shutting down")


if __name__ == "__main__":
    main()
