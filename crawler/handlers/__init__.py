"""Command handler groups and the processor that dispatches to them."""

from __future__ import annotations

import logging
from typing import Dict

from crawler.commands import Command, CommandResult
from crawler.errors import UnknownCommandError
from crawler.state import GameState

from .base import Handler, HandlerContext, Route
from .combat import CombatHandler
from .interaction import InteractionHandler
from .inventory import InventoryHandler
from .movement import MovementHandler

__all__ = [
    "CombatHandler",
    "CommandProcessor",
    "Handler",
    "HandlerContext",
    "InteractionHandler",
    "InventoryHandler",
    "MovementHandler",
]

log = logging.getLogger(__name__)


class CommandProcessor:
    """Route parsed commands to the handler group that owns their action."""

    def __init__(self, context: HandlerContext) -> None:
        self.context = context
        interaction = InteractionHandler(context)
        self.handlers = (
            MovementHandler(context),
            InventoryHandler(context, interaction),
            interaction,
            CombatHandler(context),
        )
        self._routes: Dict[str, Route] = {}
        for handler in self.handlers:
            self._routes.update(handler.routes())

    def execute(self, command: Command, state: GameState) -> CommandResult:
        route = self._routes.get(command.action)
        if route is None:
            raise UnknownCommandError(command.verb)
        log.debug("Dispatching %s (%s)", command.action, command.raw)
        return route(command, state)
