"""Room descriptions and the optional asynchronous narration backend."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Mapping, Optional

from .dungeon.models import Room

__all__ = [
    "DEFAULT_NARRATION_TIMEOUT",
    "ROOM_TYPE_DESCRIPTIONS",
    "NarrationBackend",
    "RoomContext",
    "RoomNarrator",
    "describe_room",
    "static_description",
]

log = logging.getLogger(__name__)

DEFAULT_NARRATION_TIMEOUT = 2.0

ROOM_TYPE_DESCRIPTIONS: Mapping[str, str] = {
    "entrance": "You stand at the entrance to the dungeon. Ancient stone walls stretch into darkness ahead.",
    "corridor": "You are in a narrow stone corridor. Torchlight flickers against the damp walls.",
    "chamber": "You enter a large chamber with high vaulted ceilings. Shadows dance in the corners.",
    "armory": "This appears to be an old armory. Weapon racks line the walls, though most are empty.",
    "library": "You are in what was once a library. Dusty tomes and scrolls are scattered about.",
    "throne_room": "A grand throne room stretches before you. An ornate throne sits upon a raised dais.",
    "treasure_room": "This room glitters with the promise of treasure. Gold coins are scattered on the floor.",
}
_DEFAULT_DESCRIPTION = "You are in a stone room. The walls are rough-hewn and ancient."


def static_description(room_type: str) -> str:
    return ROOM_TYPE_DESCRIPTIONS.get(room_type, _DEFAULT_DESCRIPTION)


def describe_room(room: Room, *, base: str | None = None) -> str:
    """Full ``look`` text: scenery first, then everything the player can act on."""

    sections: List[str] = [base or room.description or static_description(room.room_type)]
    if room.exits:
        exits = [f"{direction} (locked)" if room.lock_for(direction) else direction for direction in room.exits]
        sections.append(f"Exits: {', '.join(exits)}")
    traps = [trap.name for trap in room.traps if trap.detected and trap.is_armed]
    if traps:
        sections.append(f"Traps: {', '.join(traps)}")
    puzzles = [puzzle.name for puzzle in room.puzzles if not puzzle.solved]
    if puzzles:
        sections.append(f"Puzzles: {', '.join(puzzles)}")
    if room.hazards:
        sections.append(f"Hazards: {', '.join(hazard.name for hazard in room.hazards)}")
    if room.contents.features:
        sections.append(f"Features: {', '.join(feature.name for feature in room.contents.features)}")
    if room.interactive_elements:
        sections.append(f"Objects: {', '.join(element.name for element in room.interactive_elements)}")
    if room.contents.items:
        sections.append(f"You see: {', '.join(item.name for item in room.contents.items)}")
    enemies = room.contents.living_enemies
    if enemies:
        sections.append(f"Enemies: {', '.join(enemy.name for enemy in enemies)}")
    return "\n\n".join(sections)


@dataclass(frozen=True)
class RoomContext:
    """What a narration backend is told about a room."""

    room_id: str
    room_type: str
    name: str
    exits: tuple[str, ...]
    enemies: tuple[str, ...]
    items: tuple[str, ...]
    features: tuple[str, ...]
    hazards: tuple[str, ...]
    elements: tuple[str, ...]
    visited: bool

    @classmethod
    def from_room(cls, room: Room) -> "RoomContext":
        return cls(
            room_id=room.id,
            room_type=room.room_type,
            name=room.name,
            exits=tuple(room.exits),
            enemies=tuple(enemy.name for enemy in room.contents.living_enemies),
            items=tuple(item.name for item in room.contents.items),
            features=tuple(feature.name for feature in room.contents.features),
            hazards=tuple(hazard.name for hazard in room.hazards),
            elements=tuple(element.name for element in room.interactive_elements),
            visited=room.visited,
        )


NarrationBackend = Callable[[RoomContext, Optional[str]], Awaitable[str]]


class RoomNarrator:
    """Ask an external backend for prose, falling back to the static text."""

    def __init__(self, backend: NarrationBackend | None = None, *, timeout: float = DEFAULT_NARRATION_TIMEOUT) -> None:
        self.backend = backend
        self.timeout = timeout

    async def describe(self, room: Room, model: str | None = None) -> str:
        fallback = static_description(room.room_type)
        if self.backend is None:
            return fallback
        context = RoomContext.from_room(room)
        try:
            text = await asyncio.wait_for(self.backend(context, model), timeout=self.timeout)
        except asyncio.TimeoutError:
            log.warning("Narration for %s timed out after %.1fs", room.id, self.timeout)
            return fallback
        except Exception as exc:
            log.warning("Narration backend failed for %s: %s", room.id, exc)
            return fallback
        text = (text or "").strip()
        return text or fallback
