"""Shared plumbing for command handler groups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, TypeVar

from crawler.characters import Item
from crawler.combat import CombatSystem
from crawler.commands import Command, CommandResult
from crawler.content import ContentLibrary
from crawler.errors import UserInputError
from crawler.magic import MagicSystem
from crawler.rng import SeededRandom
from crawler.state import GameState

__all__ = ["Handler", "HandlerContext", "Route", "find_named", "item_names", "require_target"]

Route = Callable[[Command, GameState], CommandResult]
N = TypeVar("N")


@dataclass
class HandlerContext:
    """Systems a handler may consult while resolving one command."""

    library: ContentLibrary
    rng: SeededRandom
    combat: CombatSystem
    magic: MagicSystem


class Handler:
    def __init__(self, context: HandlerContext) -> None:
        self.context = context

    @property
    def rng(self) -> SeededRandom:
        return self.context.rng

    def routes(self) -> Dict[str, Route]:
        raise NotImplementedError


def require_target(command: Command, prompt: str) -> str:
    target = command.target.strip()
    if not target:
        raise UserInputError(prompt)
    return target


def find_named(entries: Iterable[N], text: str, name: Callable[[N], str]) -> N | None:
    """First entry whose name contains ``text`` (case-insensitive)."""

    needle = text.strip().lower()
    for entry in entries:
        if needle and needle in name(entry).lower():
            return entry
    return None


def item_names(items: Iterable[Item]) -> str:
    return ", ".join(item.name for item in items)
