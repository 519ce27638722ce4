"""Utilities for rendering dungeon maps as raster images."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from PIL import Image, ImageDraw, ImageFont

from .models import Dungeon, Room

__all__ = ["RenderConfig", "render_dungeon_map"]

Colour = Tuple[int, int, int, int]


@dataclass(frozen=True)
class RenderConfig:
    """Configuration controlling how dungeon maps are rendered."""

    tile_size: int = 96
    margin: int = 32
    corridor_width: int = 8
    room_ratio: float = 0.62
    door_size: int = 14
    background: Colour = (16, 17, 23, 255)
    room_fill: Colour = (54, 59, 82, 255)
    room_outline: Colour = (206, 214, 242, 255)
    entrance_fill: Colour = (62, 120, 84, 255)
    treasure_fill: Colour = (176, 140, 48, 255)
    highlight_fill: Colour = (88, 129, 189, 255)
    highlight_outline: Colour = (233, 242, 255, 255)
    corridor_colour: Colour = (134, 142, 170, 255)
    locked_colour: Colour = (196, 64, 64, 255)
    label_colour: Colour = (240, 245, 255, 255)


def _visible_rooms(dungeon: Dungeon, current_room: str | None, visited_only: bool) -> Dict[str, Room]:
    return {room.id: room for room in dungeon if not visited_only or room.visited or room.id == current_room}


def render_dungeon_map(
    dungeon: Dungeon,
    *,
    current_room: str | None = None,
    visited_only: bool = False,
    config: RenderConfig | None = None,
) -> Image.Image:
    """Render ``dungeon`` on its grid as a :class:`PIL.Image.Image`.

    Rooms are drawn at their grid coordinates with north at the top. Corridors
    join connected rooms, locked doors are marked at the corridor midpoint and
    the entrance, treasure room and ``current_room`` get their own colours.
    With ``visited_only`` only rooms the player has seen are drawn.
    """

    rooms = _visible_rooms(dungeon, current_room, visited_only)
    if not rooms:
        raise ValueError("A dungeon map needs at least one room to draw")

    config = config or RenderConfig()
    xs = [room.coordinates[0] for room in rooms.values()]
    ys = [room.coordinates[1] for room in rooms.values()]
    min_x, min_y = min(xs), min(ys)
    tile_size = max(32, config.tile_size)
    width = (max(xs) - min_x + 1) * tile_size + config.margin * 2
    height = (max(ys) - min_y + 1) * tile_size + config.margin * 2

    image = Image.new("RGBA", (width, height), config.background)
    draw = ImageDraw.Draw(image)

    def centre(room: Room) -> Tuple[int, int]:
        x, y = room.coordinates
        return (
            config.margin + int((x - min_x + 0.5) * tile_size),
            config.margin + int((y - min_y + 0.5) * tile_size),
        )

    # Corridors first so rooms are layered on top.
    doors: List[Tuple[int, int]] = []
    drawn = set()
    for room in rooms.values():
        for direction, target_id in room.exits.items():
            edge = frozenset((room.id, target_id))
            if target_id not in rooms or edge in drawn:
                continue
            drawn.add(edge)
            start, end = centre(room), centre(rooms[target_id])
            draw.line([start, end], fill=config.corridor_colour, width=max(2, config.corridor_width))
            if room.lock_for(direction) is not None:
                doors.append(((start[0] + end[0]) // 2, (start[1] + end[1]) // 2))

    half = config.door_size // 2
    for x, y in doors:
        draw.rectangle((x - half, y - half, x + half, y + half), fill=config.locked_colour)

    half_room = int(tile_size * config.room_ratio / 2)
    font = ImageFont.load_default()
    for room in rooms.values():
        x, y = centre(room)
        outline = config.room_outline
        if room.id == current_room:
            fill, outline = config.highlight_fill, config.highlight_outline
        elif room.id == dungeon.entrance_room_id:
            fill = config.entrance_fill
        elif room.id == dungeon.treasure_room_id:
            fill = config.treasure_fill
        else:
            fill = config.room_fill
        draw.rounded_rectangle(
            (x - half_room, y - half_room, x + half_room, y + half_room),
            radius=max(4, half_room // 3),
            fill=fill,
            outline=outline,
            width=3,
        )
        label = room.room_type[:1].upper()
        left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
        draw.text((x - (right - left) // 2, y - (bottom - top) // 2), label, fill=config.label_colour, font=font)

    return image
