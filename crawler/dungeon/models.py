"""Runtime data model for generated dungeons."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, TypeVar

from crawler.characters import AbilityScores, Item, StatusEffect
from crawler.errors import StateConsistencyError
from crawler.serialization import as_int, mapping_field, optional_int, records, strings

__all__ = [
    "DIRECTIONS",
    "DIRECTION_OFFSETS",
    "OPPOSITE_DIRECTIONS",
    "ROOM_TYPES",
    "Dungeon",
    "ElementEffect",
    "Enemy",
    "EnemyAttack",
    "Hazard",
    "InteractiveElement",
    "Lock",
    "LootTable",
    "Puzzle",
    "Room",
    "RoomContents",
    "RoomFeature",
    "Trap",
    "manhattan_distance",
    "pairs_to_dict",
]

log = logging.getLogger(__name__)

V = TypeVar("V")

DIRECTIONS: tuple[str, ...] = ("north", "south", "east", "west")
DIRECTION_OFFSETS: Mapping[str, Tuple[int, int]] = {
    "north": (0, -1),
    "south": (0, 1),
    "east": (1, 0),
    "west": (-1, 0),
}
OPPOSITE_DIRECTIONS: Mapping[str, str] = {
    "north": "south",
    "south": "north",
    "east": "west",
    "west": "east",
}
ROOM_TYPES: tuple[str, ...] = (
    "entrance",
    "corridor",
    "chamber",
    "armory",
    "library",
    "throne_room",
    "treasure_room",
    "generic",
)
LOCK_TYPES: tuple[str, ...] = ("simple", "complex", "magical", "keycard")
HAZARD_SEVERITIES: tuple[str, ...] = ("minor", "moderate", "severe", "extreme")


def manhattan_distance(first: Tuple[int, int], second: Tuple[int, int] = (0, 0)) -> int:
    return abs(first[0] - second[0]) + abs(first[1] - second[1])


def pairs_to_dict(
    raw: object,
    *,
    label: str,
    value_factory: Callable[[object], V],
) -> Dict[str, V]:
    """Rebuild a mapping stored as ``[[key, value], ...]``.

    Plain mappings are accepted as well. Anything that cannot be rebuilt
    yields an empty mapping and a logged warning.
    """

    if raw is None:
        return {}
    try:
        if isinstance(raw, Mapping):
            pairs: Iterable[object] = raw.items()
        elif isinstance(raw, (list, tuple)):
            pairs = raw
        else:
            raise TypeError(f"expected pairs, not {type(raw).__name__}")
        result: Dict[str, V] = {}
        for pair in pairs:
            if not isinstance(pair, (list, tuple)) or len(pair) != 2:
                raise ValueError(f"malformed entry {pair!r}")
            result[str(pair[0])] = value_factory(pair[1])
        return result
    except (TypeError, ValueError, KeyError) as exc:
        log.warning("Could not reconstruct %s map, using an empty map: %s", label, exc)
        return {}


def _dict_to_pairs(mapping: Mapping[str, V], convert: Callable[[V], object] = lambda value: value) -> List[list]:
    return [[key, convert(value)] for key, value in mapping.items()]


def _record(factory: Callable[[Mapping[str, object]], V]) -> Callable[[object], V]:
    def build(value: object) -> V:
        if not isinstance(value, Mapping):
            raise ValueError(f"expected a mapping, not {type(value).__name__}")
        return factory(value)

    return build


@dataclass
class Lock:
    id: str
    type: str
    difficulty: int
    key_id: str | None = None
    unlocked: bool = False
    attempts: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "type": self.type,
            "difficulty": self.difficulty,
            "key_id": self.key_id,
            "unlocked": self.unlocked,
            "attempts": self.attempts,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Lock":
        key_id = data.get("key_id")
        return cls(
            id=str(data["id"]),
            type=str(data.get("type", "simple")),
            difficulty=int(data.get("difficulty", 10)),
            key_id=str(key_id) if key_id is not None else None,
            unlocked=bool(data.get("unlocked", False)),
            attempts=int(data.get("attempts", 0)),
        )


@dataclass
class Trap:
    id: str
    name: str
    description: str
    type: str
    detection_dc: int
    disarm_dc: int
    damage: str | None
    effect: str
    detected: bool = False
    disarmed: bool = False
    triggered: bool = False

    @property
    def is_armed(self) -> bool:
        return not (self.disarmed or self.triggered)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "detection_dc": self.detection_dc,
            "disarm_dc": self.disarm_dc,
            "damage": self.damage,
            "effect": self.effect,
            "detected": self.detected,
            "disarmed": self.disarmed,
            "triggered": self.triggered,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Trap":
        damage = data.get("damage")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "Trap")),
            description=str(data.get("description", "")),
            type=str(data.get("type", "spike")),
            detection_dc=int(data.get("detection_dc", 12)),
            disarm_dc=int(data.get("disarm_dc", 12)),
            damage=str(damage) if damage is not None else None,
            effect=str(data.get("effect", "damage")),
            detected=bool(data.get("detected", False)),
            disarmed=bool(data.get("disarmed", False)),
            triggered=bool(data.get("triggered", False)),
        )


@dataclass
class Puzzle:
    id: str
    name: str
    description: str
    type: str
    solution: str
    max_attempts: int | None = 3
    attempts: int = 0
    solved: bool = False
    reward: List[Item] = field(default_factory=list)
    penalty: str | None = None

    @property
    def locked_out(self) -> bool:
        return self.max_attempts is not None and self.attempts >= self.max_attempts and not self.solved

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "solution": self.solution,
            "max_attempts": self.max_attempts,
            "attempts": self.attempts,
            "solved": self.solved,
            "reward": [item.to_dict() for item in self.reward],
            "penalty": self.penalty,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Puzzle":
        max_attempts = data.get("max_attempts")
        penalty = data.get("penalty")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "Puzzle")),
            description=str(data.get("description", "")),
            type=str(data.get("type", "riddle")),
            solution=str(data["solution"]),
            max_attempts=int(max_attempts) if max_attempts is not None else None,
            attempts=int(data.get("attempts", 0)),
            solved=bool(data.get("solved", False)),
            reward=records(data, "reward", Item.from_dict),
            penalty=str(penalty) if penalty else None,
        )


@dataclass
class Hazard:
    id: str
    name: str
    description: str
    type: str
    severity: str
    is_permanent: bool = True
    duration: int | None = None
    damage_per_turn: str | None = None
    triggered_by_movement: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "severity": self.severity,
            "is_permanent": self.is_permanent,
            "duration": self.duration,
            "damage_per_turn": self.damage_per_turn,
            "triggered_by_movement": self.triggered_by_movement,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Hazard":
        duration = data.get("duration")
        damage = data.get("damage_per_turn")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "Hazard")),
            description=str(data.get("description", "")),
            type=str(data.get("type", "thick_fog")),
            severity=str(data.get("severity", "minor")),
            is_permanent=bool(data.get("is_permanent", True)),
            duration=int(duration) if duration is not None else None,
            damage_per_turn=str(damage) if damage else None,
            triggered_by_movement=bool(data.get("triggered_by_movement", False)),
        )


@dataclass
class ElementEffect:
    target: str
    description: str
    heal: str | None = None
    damage: str | None = None
    status_effect: StatusEffect | None = None
    spawn_items: List[Item] = field(default_factory=list)
    teleport_destination: str | None = None
    room_effect: str | None = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "target": self.target,
            "description": self.description,
            "heal": self.heal,
            "damage": self.damage,
            "status_effect": self.status_effect.to_dict() if self.status_effect else None,
            "spawn_items": [item.to_dict() for item in self.spawn_items],
            "teleport_destination": self.teleport_destination,
            "room_effect": self.room_effect,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "ElementEffect":
        status = data.get("status_effect")
        destination = data.get("teleport_destination")
        room_effect = data.get("room_effect")
        return cls(
            target=str(data.get("target", "character")),
            description=str(data.get("description", "")),
            heal=str(data["heal"]) if data.get("heal") else None,
            damage=str(data["damage"]) if data.get("damage") else None,
            status_effect=StatusEffect.from_dict(status) if isinstance(status, Mapping) else None,
            spawn_items=records(data, "spawn_items", Item.from_dict),
            teleport_destination=str(destination) if destination else None,
            room_effect=str(room_effect) if room_effect else None,
        )


@dataclass
class InteractiveElement:
    id: str
    name: str
    description: str
    type: str
    effect: ElementEffect
    activated: bool = False
    uses_remaining: int | None = None
    requires_item: str | None = None
    skill_required: str | None = None
    difficulty_class: int | None = None
    cooldown_turns: int | None = None
    last_used_turn: int | None = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "effect": self.effect.to_dict(),
            "activated": self.activated,
            "uses_remaining": self.uses_remaining,
            "requires_item": self.requires_item,
            "skill_required": self.skill_required,
            "difficulty_class": self.difficulty_class,
            "cooldown_turns": self.cooldown_turns,
            "last_used_turn": self.last_used_turn,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "InteractiveElement":
        requires = data.get("requires_item")
        skill = data.get("skill_required")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "Element")),
            description=str(data.get("description", "")),
            type=str(data.get("type", "lever")),
            effect=ElementEffect.from_dict(mapping_field(data, "effect")),
            activated=bool(data.get("activated", False)),
            uses_remaining=optional_int(data, "uses_remaining"),
            requires_item=str(requires) if requires else None,
            skill_required=str(skill) if skill else None,
            difficulty_class=optional_int(data, "difficulty_class"),
            cooldown_turns=optional_int(data, "cooldown_turns"),
            last_used_turn=optional_int(data, "last_used_turn"),
        )


@dataclass
class RoomFeature:
    """Searchable scenery that may hide items."""

    id: str
    name: str
    description: str
    hidden_items: List[Item] = field(default_factory=list)
    searched: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "hidden_items": [item.to_dict() for item in self.hidden_items],
            "searched": self.searched,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "RoomFeature":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "Feature")),
            description=str(data.get("description", "")),
            hidden_items=records(data, "hidden_items", Item.from_dict),
            searched=bool(data.get("searched", False)),
        )


@dataclass(frozen=True)
class EnemyAttack:
    name: str
    damage_roll: str
    hit_bonus: int
    verb: str = "attacks"

    def to_dict(self) -> Dict[str, object]:
        return {"name": self.name, "damage_roll": self.damage_roll, "hit_bonus": self.hit_bonus, "verb": self.verb}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "EnemyAttack":
        return cls(
            name=str(data.get("name", "Strike")),
            damage_roll=str(data.get("damage_roll", "1d4")),
            hit_bonus=int(data.get("hit_bonus", 0)),
            verb=str(data.get("verb", "attacks")),
        )


@dataclass
class LootTable:
    """Items and coins an enemy drops when defeated."""

    items: List[Item] = field(default_factory=list)
    gold: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {"items": [item.to_dict() for item in self.items], "gold": self.gold}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "LootTable":
        return cls(items=records(data, "items", Item.from_dict), gold=int(data.get("gold", 0)))


@dataclass
class Enemy:
    id: str
    name: str
    kind: str
    level: int
    ability_scores: AbilityScores
    hp_current: int
    hp_max: int
    armor_class: int
    attacks: List[EnemyAttack]
    behavior: str
    loot: LootTable = field(default_factory=LootTable)
    abilities: List[str] = field(default_factory=list)
    resources: Dict[str, int] = field(default_factory=dict)
    description: str = ""
    is_boss: bool = False

    @property
    def is_alive(self) -> bool:
        return self.hp_current > 0

    def modifier(self, ability: str) -> int:
        return self.ability_scores.modifier(ability)

    def take_damage(self, amount: int) -> int:
        dealt = max(0, min(int(amount), self.hp_current))
        self.hp_current -= dealt
        return dealt

    def heal(self, amount: int) -> int:
        healed = max(0, min(int(amount), self.hp_max - self.hp_current))
        self.hp_current += healed
        return healed

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "level": self.level,
            "ability_scores": self.ability_scores.to_dict(),
            "hp": {"current": self.hp_current, "max": self.hp_max},
            "armor_class": self.armor_class,
            "attacks": [attack.to_dict() for attack in self.attacks],
            "behavior": self.behavior,
            "loot": self.loot.to_dict(),
            "abilities": list(self.abilities),
            "resources": dict(self.resources),
            "description": self.description,
            "is_boss": self.is_boss,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Enemy":
        hp = mapping_field(data, "hp", required=True)
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "Enemy")),
            kind=str(data.get("kind", "goblin")),
            level=int(data.get("level", 1)),
            ability_scores=AbilityScores.from_dict(mapping_field(data, "ability_scores", required=True)),
            hp_current=as_int(hp["current"], "hp.current"),
            hp_max=as_int(hp["max"], "hp.max"),
            armor_class=int(data.get("armor_class", 10)),
            attacks=records(data, "attacks", EnemyAttack.from_dict),
            behavior=str(data.get("behavior", "goblin")),
            loot=LootTable.from_dict(mapping_field(data, "loot")),
            abilities=strings(data, "abilities"),
            resources={str(k): as_int(v, f"resources.{k}") for k, v in mapping_field(data, "resources").items()},
            description=str(data.get("description", "")),
            is_boss=bool(data.get("is_boss", False)),
        )


@dataclass
class RoomContents:
    enemies: List[Enemy] = field(default_factory=list)
    items: List[Item] = field(default_factory=list)
    features: List[RoomFeature] = field(default_factory=list)
    searched: bool = False

    @property
    def living_enemies(self) -> List[Enemy]:
        return [enemy for enemy in self.enemies if enemy.is_alive]

    def to_dict(self) -> Dict[str, object]:
        return {
            "enemies": [enemy.to_dict() for enemy in self.enemies],
            "items": [item.to_dict() for item in self.items],
            "features": [feature.to_dict() for feature in self.features],
            "searched": self.searched,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "RoomContents":
        return cls(
            enemies=records(data, "enemies", Enemy.from_dict),
            items=records(data, "items", Item.from_dict),
            features=records(data, "features", RoomFeature.from_dict),
            searched=bool(data.get("searched", False)),
        )


@dataclass
class Room:
    """A node of the dungeon graph."""

    id: str
    coordinates: Tuple[int, int]
    room_type: str
    template: str = ""
    name: str = ""
    description: str = ""
    exits: Dict[str, str] = field(default_factory=dict)
    locked_exits: Dict[str, Lock] = field(default_factory=dict)
    hidden_exits: Dict[str, str] = field(default_factory=dict)
    contents: RoomContents = field(default_factory=RoomContents)
    visited: bool = False
    traps: List[Trap] = field(default_factory=list)
    puzzles: List[Puzzle] = field(default_factory=list)
    hazards: List[Hazard] = field(default_factory=list)
    interactive_elements: List[InteractiveElement] = field(default_factory=list)

    @property
    def depth(self) -> int:
        return manhattan_distance(self.coordinates)

    def lock_for(self, direction: str) -> Optional[Lock]:
        lock = self.locked_exits.get(direction)
        if lock is None or lock.unlocked:
            return None
        return lock

    def active_locks(self) -> List[Tuple[str, Lock]]:
        return [(direction, lock) for direction, lock in self.locked_exits.items() if not lock.unlocked]

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "coordinates": list(self.coordinates),
            "room_type": self.room_type,
            "template": self.template,
            "name": self.name,
            "description": self.description,
            "exits": _dict_to_pairs(self.exits),
            "locked_exits": _dict_to_pairs(self.locked_exits, lambda lock: lock.to_dict()),
            "hidden_exits": _dict_to_pairs(self.hidden_exits),
            "contents": self.contents.to_dict(),
            "visited": self.visited,
            "traps": [trap.to_dict() for trap in self.traps],
            "puzzles": [puzzle.to_dict() for puzzle in self.puzzles],
            "hazards": [hazard.to_dict() for hazard in self.hazards],
            "interactive_elements": [element.to_dict() for element in self.interactive_elements],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Room":
        coordinates = data.get("coordinates", (0, 0))
        if not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
            raise ValueError(f"Room coordinates must be an (x, y) pair, not {coordinates!r}")
        x, y = coordinates
        room_id = str(data["id"])
        return cls(
            id=room_id,
            coordinates=(as_int(x, "x"), as_int(y, "y")),
            room_type=str(data.get("room_type", "generic")),
            template=str(data.get("template", "")),
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            exits=pairs_to_dict(data.get("exits"), label=f"exits of {room_id}", value_factory=str),
            locked_exits=pairs_to_dict(
                data.get("locked_exits"),
                label=f"locked exits of {room_id}",
                value_factory=_record(Lock.from_dict),
            ),
            hidden_exits=pairs_to_dict(data.get("hidden_exits"), label=f"hidden exits of {room_id}", value_factory=str),
            contents=RoomContents.from_dict(mapping_field(data, "contents")),
            visited=bool(data.get("visited", False)),
            traps=records(data, "traps", Trap.from_dict),
            puzzles=records(data, "puzzles", Puzzle.from_dict),
            hazards=records(data, "hazards", Hazard.from_dict),
            interactive_elements=records(data, "interactive_elements", InteractiveElement.from_dict),
        )


@dataclass
class Dungeon:
    """Room graph rooted at the entrance.

    Rooms are kept in insertion order so traversals and serialisation are
    reproducible for a given seed.
    """

    id: str
    seed: int
    rooms: Dict[str, Room] = field(default_factory=dict)
    entrance_room_id: str = "entrance"
    treasure_room_id: str | None = None

    def __iter__(self) -> Iterator[Room]:
        return iter(self.rooms.values())

    def __len__(self) -> int:
        return len(self.rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self.rooms

    @property
    def entrance(self) -> Room:
        return self.get_room(self.entrance_room_id)

    def get_room(self, room_id: str) -> Room:
        try:
            return self.rooms[room_id]
        except KeyError as exc:
            raise StateConsistencyError(f"Room '{room_id}' does not exist") from exc

    def room_at(self, coordinates: Tuple[int, int]) -> Optional[Room]:
        for room in self.rooms.values():
            if room.coordinates == coordinates:
                return room
        return None

    def depth_of(self, room_id: str) -> int:
        return manhattan_distance(self.get_room(room_id).coordinates, self.entrance.coordinates)

    def reachable_from(self, start: str | None = None, *, through_locks: bool = True) -> List[str]:
        """Breadth-first traversal returning room ids in visit order."""

        origin = start or self.entrance_room_id
        seen = {origin}
        order = [origin]
        queue = deque([origin])
        while queue:
            room = self.get_room(queue.popleft())
            for direction, target in room.exits.items():
                if target in seen:
                    continue
                if not through_locks and room.lock_for(direction) is not None:
                    continue
                seen.add(target)
                order.append(target)
                queue.append(target)
        return order

    def locks_with_id(self, lock_id: str) -> List[Lock]:
        return [
            lock
            for room in self.rooms.values()
            for lock in room.locked_exits.values()
            if lock.id == lock_id
        ]

    def unlock(self, lock_id: str) -> int:
        """Unlock both sides of the door guarded by ``lock_id``."""

        locks = self.locks_with_id(lock_id)
        for lock in locks:
            lock.unlocked = True
        return len(locks)

    def connect(self, first: Room, direction: str, second: Room) -> None:
        first.exits[direction] = second.id
        second.exits[OPPOSITE_DIRECTIONS[direction]] = first.id

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "seed": self.seed,
            "entrance_room_id": self.entrance_room_id,
            "treasure_room_id": self.treasure_room_id,
            "rooms": _dict_to_pairs(self.rooms, lambda room: room.to_dict()),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Dungeon":
        treasure = data.get("treasure_room_id")
        return cls(
            id=str(data.get("id", "dungeon")),
            seed=int(data.get("seed", 0)),
            rooms=pairs_to_dict(data.get("rooms"), label="rooms", value_factory=_record(Room.from_dict)),
            entrance_room_id=str(data.get("entrance_room_id", "entrance")),
            treasure_room_id=str(treasure) if treasure else None,
        )
