"""Exception hierarchy shared by the engine, handlers and persistence layer."""

from __future__ import annotations

__all__ = [
    "CrawlerError",
    "PersistenceError",
    "RuleViolation",
    "StateConsistencyError",
    "UnknownCommandError",
    "UserInputError",
]


class CrawlerError(Exception):
    """Base class for all game errors."""


class UserInputError(CrawlerError):
    """Raised when a command cannot be understood or lacks a target."""


class UnknownCommandError(UserInputError):
    """Raised when the verb of a command is not recognised."""

    def __init__(self, verb: str) -> None:
        super().__init__(f"Unknown command: {verb}. Type 'help' for available commands.")
        self.verb = verb


class RuleViolation(CrawlerError):
    """Raised when a well-formed command is not allowed by the game rules."""


class StateConsistencyError(CrawlerError):
    """Raised when the game state does not match what a handler expects."""


class PersistenceError(CrawlerError):
    """Raised by save storage backends with a machine readable reason."""

    def __init__(self, message: str, *, reason: str = "unknown") -> None:
        super().__init__(message)
        self.reason = reason
