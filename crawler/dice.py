"""Dice expression helpers."""

from __future__ import annotations

import logging
import re
from typing import Optional, Protocol, Tuple

__all__ = ["DiceSource", "parse_dice", "roll_d20", "roll_dice", "split_damage"]

log = logging.getLogger(__name__)

_DAMAGE_ROLL_PATTERN = re.compile(r"(?i)(?P<count>\d+)d(?P<sides>\d+)(?P<modifier>[+-]\d+)?")


class DiceSource(Protocol):
    def randint(self, minimum: int, maximum: int) -> int: ...


def parse_dice(expression: str) -> Optional[Tuple[int, int, int]]:
    """Return ``(count, sides, modifier)`` or ``None`` if unparseable."""

    match = _DAMAGE_ROLL_PATTERN.fullmatch(expression.strip().replace(" ", ""))
    if not match:
        return None
    count = max(1, int(match.group("count")))
    sides = max(1, int(match.group("sides")))
    modifier = int(match.group("modifier") or 0)
    return count, sides, modifier


def roll_d20(rng: DiceSource) -> int:
    return rng.randint(1, 20)


def roll_dice(expression: str, rng: DiceSource, *, critical: bool = False) -> int:
    """Roll ``expression`` such as ``2d6+1``.

    A critical doubles the number of dice but not the flat modifier. The
    result never drops below zero.
    """

    parsed = parse_dice(expression)
    if parsed is None:
        log.warning("Unparseable dice expression %r, rolling 1d8", expression)
        return rng.randint(1, 8)
    count, sides, modifier = parsed
    rolls = [rng.randint(1, sides) for _ in range(count * (2 if critical else 1))]
    return max(0, sum(rolls) + modifier)


def split_damage(text: str) -> Tuple[str, Optional[str]]:
    """Split ``"2d6 piercing"`` into the dice expression and damage type."""

    parts = text.strip().split(None, 1)
    if not parts:
        return "", None
    expression = parts[0]
    damage_type = parts[1].strip().lower() if len(parts) > 1 else None
    return expression, damage_type or None
