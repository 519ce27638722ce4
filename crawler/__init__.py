"""Deterministic dungeon crawler simulation core."""

from .characters import AVAILABLE_CLASSES, Character, create_character
from .engine import GameEngine, new_character
from .errors import (
    CrawlerError,
    PersistenceError,
    RuleViolation,
    StateConsistencyError,
    UnknownCommandError,
    UserInputError,
)
from .rng import SeededRandom
from .saves import AutoSaveService, FileSaveStorage, MemorySaveStorage, SaveSystem
from .state import GameState

__all__ = [
    "AVAILABLE_CLASSES",
    "AutoSaveService",
    "Character",
    "CrawlerError",
    "FileSaveStorage",
    "GameEngine",
    "GameState",
    "MemorySaveStorage",
    "PersistenceError",
    "RuleViolation",
    "SaveSystem",
    "SeededRandom",
    "StateConsistencyError",
    "UnknownCommandError",
    "UserInputError",
    "create_character",
    "new_character",
]
