from __future__ import annotations

import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crawler.characters import AbilityScores, Item
from crawler.dungeon.models import ElementEffect, Enemy, EnemyAttack, InteractiveElement, Lock, Room
from crawler.narration import RoomNarrator, describe_room, static_description


def _room() -> Room:
    room = Room(id="room-1-0", coordinates=(1, 0), room_type="armory", exits={"west": "entrance", "east": "room-2-0"})
    room.locked_exits["east"] = Lock(id="lock-1", type="simple", difficulty=12)
    room.contents.items.append(Item(id="item-1", name="Rusty Dagger", item_type="weapon"))
    room.contents.enemies.append(
        Enemy(
            id="rat-1",
            name="Giant Rat",
            kind="rat",
            level=1,
            ability_scores=AbilityScores({"STR": 7, "DEX": 15, "CON": 11, "INT": 2, "WIS": 10, "CHA": 4}),
            hp_current=4,
            hp_max=4,
            armor_class=12,
            attacks=[EnemyAttack("Bite", "1d4", 4, "bites")],
            behavior="rat",
        )
    )
    return room


def test_room_text_lists_exits_items_and_enemies() -> None:
    text = describe_room(_room())
    sections = text.split("\n\n")
    assert sections[0] == static_description("armory")
    assert "Exits: west, east (locked)" in sections
    assert "You see: Rusty Dagger" in sections
    assert sections[-1] == "Enemies: Giant Rat"


def test_unknown_room_types_get_generic_scenery() -> None:
    assert static_description("oubliette") == "You are in a stone room. The walls are rough-hewn and ancient."


def test_narrator_without_backend_uses_static_text() -> None:
    assert asyncio.run(RoomNarrator().describe(_room())) == static_description("armory")


def test_narrator_passes_room_context_to_backend() -> None:
    seen = []

    async def backend(context, model):
        seen.append((context, model))
        return "  Racks of broken spears line the walls.  "

    room = _room()
    room.interactive_elements.append(
        InteractiveElement(
            id="lever-1",
            name="Rusted Lever",
            description="A lever set into the wall.",
            type="lever",
            effect=ElementEffect(target="room", description="Something grinds in the walls."),
        )
    )

    text = asyncio.run(RoomNarrator(backend).describe(room, "storyteller"))

    assert text == "Racks of broken spears line the walls."
    context, model = seen[0]
    assert model == "storyteller"
    assert context.room_type == "armory"
    assert context.exits == ("west", "east")
    assert context.enemies == ("Giant Rat",)
    assert context.elements == ("Rusted Lever",)
    assert context.hazards == ()


def test_slow_or_silent_backends_fall_back() -> None:
    async def slow(context, model):
        await asyncio.sleep(1)
        return "Too late."

    async def silent(context, model):
        return "   "

    assert asyncio.run(RoomNarrator(slow, timeout=0.01).describe(_room())) == static_description("armory")
    assert asyncio.run(RoomNarrator(silent).describe(_room())) == static_description("armory")


def test_failing_backends_fall_back(caplog) -> None:
    async def broken(context, model):
        raise ConnectionError("storyteller is offline")

    with caplog.at_level("WARNING", logger="crawler.narration"):
        text = asyncio.run(RoomNarrator(broken).describe(_room()))

    assert text == static_description("armory")
    assert "storyteller is offline" in caplog.text
