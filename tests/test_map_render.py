from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crawler.dungeon.map_render import RenderConfig, render_dungeon_map
from crawler.dungeon.models import Dungeon, Lock, Room


def _two_rooms(*, locked: bool = False) -> Dungeon:
    dungeon = Dungeon(id="map", seed=1)
    entrance = Room(id="entrance", coordinates=(0, 0), room_type="entrance", visited=True)
    hall = Room(id="hall", coordinates=(1, 0), room_type="chamber")
    dungeon.rooms = {entrance.id: entrance, hall.id: hall}
    dungeon.connect(entrance, "east", hall)
    if locked:
        entrance.locked_exits["east"] = Lock(id="lock-1", type="simple", difficulty=12)
        hall.locked_exits["west"] = Lock(id="lock-1", type="simple", difficulty=12)
    return dungeon


def test_image_covers_the_grid_with_margins() -> None:
    image = render_dungeon_map(_two_rooms())
    assert image.size == (256, 160)
    assert image.mode == "RGBA"


def test_rooms_are_coloured_by_role() -> None:
    config = RenderConfig()
    image = render_dungeon_map(_two_rooms(), current_room="hall", config=config)
    # Sample inside each room, clear of the outline and the label.
    assert image.getpixel((65, 65)) == config.entrance_fill
    assert image.getpixel((161, 65)) == config.highlight_fill
    assert image.getpixel((140, 80)) == config.corridor_colour


def test_locked_doors_are_marked_between_rooms() -> None:
    config = RenderConfig()
    image = render_dungeon_map(_two_rooms(locked=True), config=config)
    assert image.getpixel((128, 80)) == config.locked_colour


def test_visited_only_hides_unseen_rooms() -> None:
    dungeon = _two_rooms()
    assert render_dungeon_map(dungeon, visited_only=True).size == (160, 160)
    assert render_dungeon_map(dungeon, visited_only=True, current_room="hall").size == (256, 160)


def test_empty_maps_are_rejected() -> None:
    with pytest.raises(ValueError):
        render_dungeon_map(Dungeon(id="void", seed=0))
    dungeon = _two_rooms()
    dungeon.get_room("entrance").visited = False
    with pytest.raises(ValueError):
        render_dungeon_map(dungeon, visited_only=True)
