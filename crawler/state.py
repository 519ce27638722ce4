"""Aggregate game state owned by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from .characters import Character
from .combat import CombatState
from .dungeon.models import Dungeon, Room
from .serialization import as_float, mapping_field, records

__all__ = ["MAX_MESSAGES", "MESSAGE_TYPES", "GameState", "Message"]

MESSAGE_TYPES: tuple[str, ...] = ("system", "action", "combat", "description", "error")
MAX_MESSAGES = 100


@dataclass(frozen=True)
class Message:
    id: str
    text: str
    timestamp: float
    type: str = "system"

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "text": self.text, "timestamp": self.timestamp, "type": self.type}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Message":
        message_type = str(data.get("type", "system"))
        return cls(
            id=str(data["id"]),
            text=str(data.get("text", "")),
            timestamp=as_float(data.get("timestamp", 0.0), "timestamp"),
            type=message_type if message_type in MESSAGE_TYPES else "system",
        )


@dataclass
class GameState:
    """Everything needed to resume a game: character, dungeon and progress."""

    character: Character
    dungeon: Dungeon
    current_room_id: str
    previous_room_id: str | None = None
    combat: CombatState | None = None
    message_log: List[Message] = field(default_factory=list)
    turn_count: int = 0
    rng_state: int | None = None
    message_counter: int = 0

    @property
    def current_room(self) -> Room:
        return self.dungeon.get_room(self.current_room_id)

    @property
    def in_combat(self) -> bool:
        return self.combat is not None and self.combat.is_active

    def add_message(self, text: str, message_type: str = "system", *, timestamp: float = 0.0) -> Message:
        if message_type not in MESSAGE_TYPES:
            raise ValueError(f"Unknown message type '{message_type}'")
        self.message_counter += 1
        message = Message(id=f"msg-{self.message_counter}", text=text, timestamp=timestamp, type=message_type)
        self.message_log.append(message)
        if len(self.message_log) > MAX_MESSAGES:
            del self.message_log[: len(self.message_log) - MAX_MESSAGES]
        return message

    def move_to(self, room_id: str) -> Room:
        room = self.dungeon.get_room(room_id)
        self.previous_room_id = self.current_room_id
        self.current_room_id = room.id
        room.visited = True
        return room

    def to_dict(self) -> Dict[str, object]:
        return {
            "character": self.character.to_dict(),
            "dungeon": self.dungeon.to_dict(),
            "current_room_id": self.current_room_id,
            "previous_room_id": self.previous_room_id,
            "combat": self.combat.to_dict() if self.combat else None,
            "message_log": [message.to_dict() for message in self.message_log],
            "turn_count": self.turn_count,
            "rng_state": self.rng_state,
            "message_counter": self.message_counter,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "GameState":
        combat = data.get("combat")
        previous = data.get("previous_room_id")
        rng_state = data.get("rng_state")
        messages = records(data, "message_log", Message.from_dict)
        state = cls(
            character=Character.from_dict(mapping_field(data, "character", required=True)),
            dungeon=Dungeon.from_dict(mapping_field(data, "dungeon", required=True)),
            current_room_id=str(data["current_room_id"]),
            previous_room_id=str(previous) if previous else None,
            combat=CombatState.from_dict(combat) if isinstance(combat, Mapping) else None,
            message_log=messages[-MAX_MESSAGES:],
            turn_count=int(data.get("turn_count", 0)),
            rng_state=int(rng_state) if rng_state is not None else None,
            message_counter=int(data.get("message_counter", len(messages))),
        )
        state.dungeon.get_room(state.current_room_id)
        return state
