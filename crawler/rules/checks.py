"""Skill checks shared by the interaction rule engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from crawler.characters import Character, Item
from crawler.dice import DiceSource, roll_d20

from .status import stat_modifier

__all__ = ["CheckResult", "InteractionResult", "class_skill_bonus", "skill_check"]


@dataclass(frozen=True)
class CheckResult:
    roll: int
    total: int
    dc: int

    @property
    def success(self) -> bool:
        return self.total >= self.dc

    @property
    def natural_one(self) -> bool:
        return self.roll == 1

    def describe(self) -> str:
        return f"(rolled {self.roll} + {self.total - self.roll} = {self.total} vs DC {self.dc})"


@dataclass
class InteractionResult:
    """Outcome of resolving a lock, trap, puzzle, hazard or element."""

    success: bool
    message: str
    damage: int = 0
    healing: int = 0
    items_found: List[Item] = field(default_factory=list)
    effect_applied: str | None = None
    teleport_to: str | None = None


def class_skill_bonus(character: Character, skill: str) -> int:
    return character.character_class.skill_bonus(skill)


def skill_check(
    character: Character,
    ability: str,
    dc: int,
    rng: DiceSource,
    *,
    class_bonus: int = 0,
    proficient: bool = True,
) -> CheckResult:
    """Roll d20 + ability modifier + proficiency + class bonus against ``dc``."""

    roll = roll_d20(rng)
    bonus = character.modifier(ability) + stat_modifier(character.status_effects, ability) + class_bonus
    if proficient:
        bonus += character.proficiency
    return CheckResult(roll=roll, total=roll + bonus, dc=int(dc))
