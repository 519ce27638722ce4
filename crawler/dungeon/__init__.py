"""Dungeon data model and content generators."""

from .encounters import EnemyGenerator
from .loot import ItemGenerator
from .models import (
    DIRECTIONS,
    OPPOSITE_DIRECTIONS,
    Dungeon,
    Enemy,
    Hazard,
    InteractiveElement,
    Lock,
    Puzzle,
    Room,
    RoomContents,
    RoomFeature,
    Trap,
)

__all__ = [
    "DIRECTIONS",
    "OPPOSITE_DIRECTIONS",
    "Dungeon",
    "Enemy",
    "EnemyGenerator",
    "Hazard",
    "InteractiveElement",
    "ItemGenerator",
    "Lock",
    "Puzzle",
    "Room",
    "RoomContents",
    "RoomFeature",
    "Trap",
]
