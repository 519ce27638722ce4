"""Procedural dungeon generation utilities."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Set, Tuple

from crawler.content import ContentLibrary
from crawler.rng import SeededRandom, SeedLike
from crawler.rules.elements import generate_element
from crawler.rules.hazards import generate_hazard
from crawler.rules.locks import generate_lock
from crawler.rules.puzzles import generate_puzzle
from crawler.rules.traps import generate_trap

from .encounters import EnemyGenerator
from .loot import ItemGenerator
from .models import (
    DIRECTION_OFFSETS,
    DIRECTIONS,
    OPPOSITE_DIRECTIONS,
    Dungeon,
    Lock,
    Room,
    RoomFeature,
    manhattan_distance,
)

__all__ = ["DEFAULT_ROOM_BUDGET", "DungeonGenerator"]

log = logging.getLogger(__name__)

DEFAULT_ROOM_BUDGET = 15
MAX_RECURSION_DEPTH = 8
LOCK_CHANCE = 0.2
TRAP_CHANCE = 0.3
FEATURE_CHANCE = 0.5
HIDDEN_ITEM_CHANCE = 0.6

PUZZLE_CHANCES: Mapping[str, float] = {
    "treasure_room": 0.8,
    "library": 0.5,
    "throne_room": 0.4,
    "chamber": 0.2,
}
ELEMENT_CHANCES: Mapping[str, float] = {
    "treasure_room": 0.8,
    "library": 0.6,
    "throne_room": 0.6,
    "chamber": 0.5,
    "armory": 0.4,
    "generic": 0.3,
    "corridor": 0.2,
}
FEATURES: Mapping[str, Tuple[Tuple[str, str], ...]] = {
    "corridor": (("Loose Stones", "A few stones in the wall look loose."),),
    "chamber": (
        ("Broken Furniture", "Splintered remains of a table and chairs."),
        ("Old Bedroll", "A mouldering bedroll pushed against the wall."),
    ),
    "armory": (
        ("Weapon Rack", "A rack of rusted weapons, most of them broken."),
        ("Battered Chest", "A dented iron-bound chest."),
    ),
    "library": (
        ("Reading Desk", "A desk covered in scattered parchment."),
        ("Pile of Scrolls", "Scrolls heaped on the floor, many of them torn."),
    ),
    "throne_room": (("Tattered Banners", "Faded banners hang from the walls."),),
    "treasure_room": (("Overturned Urn", "A large urn lies on its side."),),
    "generic": (("Rubble Pile", "A heap of rubble from a collapsed section of ceiling."),),
}


class DungeonGenerator:
    """Generate a connected dungeon graph from a single seeded RNG.

    Every random draw goes through ``self.rng`` in a fixed order, so the
    same seed and content library always produce the same dungeon.
    """

    def __init__(
        self,
        library: ContentLibrary,
        *,
        seed: SeedLike = None,
        rng: SeededRandom | None = None,
    ) -> None:
        self.library = library
        self.rng = rng or SeededRandom(seed)
        self.items = ItemGenerator(library, self.rng)
        self.enemies = EnemyGenerator(library, self.rng, self.items)
        self._ids: Dict[str, int] = defaultdict(int)

    def _next_id(self, kind: str) -> str:
        self._ids[kind] += 1
        return f"{kind}-{self._ids[kind]}"

    def generate(self, room_budget: int = DEFAULT_ROOM_BUDGET) -> Dungeon:
        if room_budget <= 0:
            raise ValueError("room_budget must be positive")
        dungeon = Dungeon(id=f"dungeon-{self.rng.initial_seed}", seed=self.rng.initial_seed)
        entrance = Room(id="entrance", coordinates=(0, 0), room_type="entrance")
        dungeon.rooms[entrance.id] = entrance
        occupied: Set[Tuple[int, int]] = {entrance.coordinates}
        self._remaining = room_budget - 1
        self._carve(dungeon, entrance, occupied, 0)

        self._place_treasure_room(dungeon)
        self._apply_templates(dungeon)
        self._place_encounters(dungeon)
        self._place_items(dungeon)
        self._place_locks(dungeon)
        self._place_traps(dungeon)
        self._place_puzzles(dungeon)
        self._place_hazards(dungeon)
        self._place_elements(dungeon)
        log.debug("Generated %s with %d rooms", dungeon.id, len(dungeon))
        return dungeon

    # -- layout ------------------------------------------------------------
    def _carve(self, dungeon: Dungeon, current: Room, occupied: Set[Tuple[int, int]], depth: int) -> None:
        branches = 0
        max_branches = max(1, 4 - depth)
        for direction in self.rng.shuffle(DIRECTIONS):
            if self._remaining <= 0 or branches >= max_branches:
                break
            dx, dy = DIRECTION_OFFSETS[direction]
            position = (current.coordinates[0] + dx, current.coordinates[1] + dy)
            if position in occupied:
                continue
            if not self.rng.chance(max(0.3, 1 - depth * 0.1)):
                continue
            room = Room(
                id=f"room-{position[0]}-{position[1]}",
                coordinates=position,
                room_type=self._select_room_type(depth),
            )
            dungeon.rooms[room.id] = room
            occupied.add(position)
            dungeon.connect(current, direction, room)
            self._remaining -= 1
            branches += 1
            if depth + 1 < MAX_RECURSION_DEPTH and self._remaining > 0:
                self._carve(dungeon, room, occupied, depth + 1)

    def _select_room_type(self, depth: int) -> str:
        if depth <= 1:
            return self.rng.choose(("corridor", "chamber", "chamber"))
        options = ["corridor", "chamber", "chamber", "armory", "library", "generic"]
        if depth >= 4:
            options.append("throne_room")
        return self.rng.choose(options)

    def _place_treasure_room(self, dungeon: Dungeon) -> None:
        entrance = dungeon.entrance
        furthest: Optional[Room] = None
        best = 0
        for room in dungeon:
            distance = manhattan_distance(room.coordinates, entrance.coordinates)
            if distance > best:
                best = distance
                furthest = room
        if furthest is not None:
            furthest.room_type = "treasure_room"
            dungeon.treasure_room_id = furthest.id

    def _apply_templates(self, dungeon: Dungeon) -> None:
        for room in dungeon:
            template = self.library.rooms.for_room_type(room.room_type) or self.library.rooms.for_room_type("generic")
            if template is None:
                room.name = room.room_type.replace("_", " ").title()
                continue
            room.template = template.key
            room.name = template.name
            room.description = template.description

    # -- content passes ----------------------------------------------------
    def _content_rooms(self, dungeon: Dungeon) -> List[Room]:
        return [room for room in dungeon if room.id != dungeon.entrance_room_id]

    def _place_encounters(self, dungeon: Dungeon) -> None:
        for room in self._content_rooms(dungeon):
            depth = room.depth
            if room.room_type == "treasure_room":
                room.contents.enemies.append(self.enemies.generate_boss(depth))
            if self.enemies.should_have_encounter(room.room_type, depth):
                room.contents.enemies.extend(self.enemies.generate_encounter(depth))

    def _place_items(self, dungeon: Dungeon) -> None:
        for room in self._content_rooms(dungeon):
            depth = room.depth
            if room.room_type == "treasure_room":
                room.contents.items.extend(self.items.generate_treasure_hoard(depth))
            else:
                room.contents.items.extend(self.items.generate_room_items(room.room_type, depth))
            options = FEATURES.get(room.room_type, FEATURES["generic"])
            if self.rng.chance(FEATURE_CHANCE):
                name, description = self.rng.choose(options)
                feature = RoomFeature(id=self._next_id("feature"), name=name, description=description)
                if self.rng.chance(HIDDEN_ITEM_CHANCE):
                    feature.hidden_items.append(self.items.generate_random_item(depth))
                room.contents.features.append(feature)

    def _place_locks(self, dungeon: Dungeon) -> None:
        seen: Set[frozenset] = set()
        placed: List[Lock] = []
        for room in dungeon:
            for direction in DIRECTIONS:
                target_id = room.exits.get(direction)
                if target_id is None:
                    continue
                edge = frozenset((room.id, target_id))
                if edge in seen:
                    continue
                seen.add(edge)
                if dungeon.entrance_room_id in edge:
                    continue
                if not self.rng.chance(LOCK_CHANCE):
                    continue
                lock = generate_lock(self.rng, self._next_id("lock"))
                target = dungeon.get_room(target_id)
                room.locked_exits[direction] = lock
                target.locked_exits[OPPOSITE_DIRECTIONS[direction]] = Lock.from_dict(lock.to_dict())
                placed.append(lock)
        self._place_keys(dungeon, placed)

    def _place_keys(self, dungeon: Dungeon, locks: List[Lock]) -> None:
        """Put each key somewhere reachable before its door must be opened."""

        pending = {lock.id: lock for lock in locks}
        opened: Set[str] = set()
        while pending:
            reachable = self._reachable(dungeon, opened)
            visible = {
                lock.id for room_id in reachable for lock in dungeon.get_room(room_id).locked_exits.values()
            }
            frontier = [lock_id for lock_id in pending if lock_id in visible]
            if not frontier:
                log.warning("Locks %s are not reachable from the entrance", sorted(pending))
                break
            candidates = [room_id for room_id in reachable if room_id != dungeon.entrance_room_id]
            for lock_id in frontier:
                lock = pending.pop(lock_id)
                holder = dungeon.get_room(self.rng.choose(candidates))
                holder.contents.items.append(self.items.make_key(lock))
                opened.add(lock_id)

    def _reachable(self, dungeon: Dungeon, opened: Set[str]) -> List[str]:
        order = [dungeon.entrance_room_id]
        seen = set(order)
        index = 0
        while index < len(order):
            room = dungeon.get_room(order[index])
            index += 1
            for direction, target in room.exits.items():
                lock = room.locked_exits.get(direction)
                if target in seen or (lock is not None and lock.id not in opened):
                    continue
                seen.add(target)
                order.append(target)
        return order

    def _place_traps(self, dungeon: Dungeon) -> None:
        for room in self._content_rooms(dungeon):
            if self.rng.chance(TRAP_CHANCE):
                room.traps.append(generate_trap(self.library, self.rng, self._next_id("trap")))

    def _place_puzzles(self, dungeon: Dungeon) -> None:
        for room in self._content_rooms(dungeon):
            if self.rng.chance(PUZZLE_CHANCES.get(room.room_type, 0.1)):
                reward = [self.items.generate_random_item(room.depth + 1)]
                room.puzzles.append(generate_puzzle(self.library, self.rng, self._next_id("puzzle"), reward=reward))

    def _place_hazards(self, dungeon: Dungeon) -> None:
        for room in self._content_rooms(dungeon):
            if self.rng.chance(min(0.4, 0.15 + room.depth * 0.05)):
                room.hazards.append(generate_hazard(self.rng, self._next_id("hazard"), room.room_type, room.depth))

    def _place_elements(self, dungeon: Dungeon) -> None:
        for room in self._content_rooms(dungeon):
            if not self.rng.chance(ELEMENT_CHANCES.get(room.room_type, 0.3)):
                continue
            element = generate_element(
                self.library,
                self.rng,
                self._next_id("element"),
                room.room_type,
                room.depth,
                items=self.items,
            )
            if element is None:
                continue
            room.interactive_elements.append(element)
            if element.effect.room_effect == "open_passage":
                self._hide_passages(dungeon, room)

    def _hide_passages(self, dungeon: Dungeon, room: Room) -> None:
        for direction in DIRECTIONS:
            if direction in room.exits or direction in room.hidden_exits:
                continue
            dx, dy = DIRECTION_OFFSETS[direction]
            neighbour = dungeon.room_at((room.coordinates[0] + dx, room.coordinates[1] + dy))
            if neighbour is None:
                continue
            room.hidden_exits[direction] = neighbour.id
            neighbour.hidden_exits[OPPOSITE_DIRECTIONS[direction]] = room.id
