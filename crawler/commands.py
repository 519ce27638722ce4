"""Free-text command parsing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from .dungeon.models import DIRECTIONS
from .errors import UnknownCommandError, UserInputError

__all__ = [
    "ACTIONS",
    "DIRECTION_ALIASES",
    "HELP_TEXT",
    "Command",
    "CommandResult",
    "parse_command",
]

ACTIONS: tuple[str, ...] = (
    "move",
    "look",
    "search",
    "inventory",
    "get",
    "drop",
    "examine",
    "equip",
    "unequip",
    "use",
    "attack",
    "defend",
    "flee",
    "cast",
    "pick_lock",
    "detect_traps",
    "disarm_trap",
    "solve_puzzle",
    "activate",
    "pull",
    "push",
    "touch",
    "wait",
    "rest",
    "help",
)

DIRECTION_ALIASES: Mapping[str, str] = {
    "north": "north",
    "n": "north",
    "south": "south",
    "s": "south",
    "east": "east",
    "e": "east",
    "west": "west",
    "w": "west",
}

VERB_ACTIONS: Mapping[str, str] = {
    "look": "look",
    "l": "look",
    "search": "search",
    "inventory": "inventory",
    "inv": "inventory",
    "i": "inventory",
    "get": "get",
    "take": "get",
    "grab": "get",
    "drop": "drop",
    "examine": "examine",
    "exam": "examine",
    "x": "examine",
    "equip": "equip",
    "wield": "equip",
    "unequip": "unequip",
    "unwield": "unequip",
    "use": "use",
    "attack": "attack",
    "kill": "attack",
    "fight": "attack",
    "hit": "attack",
    "defend": "defend",
    "block": "defend",
    "flee": "flee",
    "run": "flee",
    "escape": "flee",
    "cast": "cast",
    "spell": "cast",
    "disarm": "disarm_trap",
    "solve": "solve_puzzle",
    "answer": "solve_puzzle",
    "activate": "activate",
    "pull": "pull",
    "push": "push",
    "touch": "touch",
    "wait": "wait",
    "rest": "rest",
    "sleep": "rest",
    "help": "help",
    "?": "help",
}

HELP_TEXT = "\n".join(
    (
        "Available commands:",
        "Movement: north/south/east/west (n/s/e/w), go <direction>",
        "Looking around: look, search, examine <thing>, detect traps",
        "Items: inventory, get <item>, drop <item>, equip <item>, unequip <item>, use <item>",
        "Combat: attack [enemy], defend, flee, cast <spell>",
        "Obstacles: pick lock [direction], disarm [trap], solve <answer>",
        "Objects: activate/pull/push/touch <object>",
        "Other: rest, wait, help",
    )
)


@dataclass(frozen=True)
class Command:
    action: str
    verb: str
    target: str = ""
    direction: str | None = None
    raw: str = ""


@dataclass
class CommandResult:
    """What a handler reports back to the engine.

    ``success`` is the outcome of the attempt. A failed skill check still
    spends the turn; only raised errors leave the state untouched.
    """

    success: bool
    message: str
    message_type: str = "action"
    moved: bool = False
    combat_action: bool = False


def _direction(word: str) -> str | None:
    return DIRECTION_ALIASES.get(word)


def parse_command(text: str) -> Command:
    raw = text.strip()
    words = raw.lower().split()
    if not words:
        raise UserInputError("Please enter a command.")
    verb, rest = words[0], words[1:]

    direction = _direction(verb)
    if direction is not None and not rest:
        return Command("move", verb, direction=direction, raw=raw)
    if verb in ("go", "move"):
        direction = _direction(rest[0]) if rest else None
        if direction is None:
            raise UserInputError(f"Go where? Try one of: {', '.join(DIRECTIONS)}.")
        return Command("move", verb, direction=direction, raw=raw)

    if verb in ("pick", "lockpick"):
        if verb == "lockpick" or "lock" in rest:
            remaining = [word for word in rest if word != "lock"]
            target = " ".join(remaining)
            return Command("pick_lock", verb, target=target, direction=_direction(target), raw=raw)
        if rest and rest[0] == "up":
            rest = rest[1:]
        return Command("get", verb, target=" ".join(rest), raw=raw)

    if verb == "detect":
        if "traps" in rest or "trap" in rest:
            return Command("detect_traps", verb, raw=raw)
        return Command("search", verb, raw=raw)

    action = VERB_ACTIONS.get(verb)
    if action is None:
        raise UnknownCommandError(verb)
    target = " ".join(rest)
    if action == "get" and rest and rest[0] == "up":
        target = " ".join(rest[1:])
    return Command(action, verb, target=target, direction=_direction(target), raw=raw)
