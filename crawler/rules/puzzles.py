"""Puzzle answers and rewards."""

from __future__ import annotations

from typing import Sequence

from crawler.characters import Item
from crawler.content import ContentLibrary
from crawler.dungeon.models import Puzzle
from crawler.errors import RuleViolation
from crawler.rng import SeededRandom

from .checks import InteractionResult

__all__ = ["PENALTY_CHANCE", "attempt_puzzle", "generate_puzzle"]

PENALTY_CHANCE = 0.3


def generate_puzzle(
    library: ContentLibrary,
    rng: SeededRandom,
    puzzle_id: str,
    *,
    reward: Sequence[Item] = (),
) -> Puzzle:
    template = library.puzzles.random_choice(rng)
    return Puzzle(
        id=puzzle_id,
        name=template.name,
        description=template.description,
        type=template.type,
        solution=template.solution,
        max_attempts=template.max_attempts,
        reward=list(reward),
        penalty=template.penalty,
    )


def attempt_puzzle(puzzle: Puzzle, answer: str, rng: SeededRandom) -> InteractionResult:
    if puzzle.solved:
        raise RuleViolation("This puzzle has already been solved.")
    if puzzle.locked_out:
        raise RuleViolation("You've made too many attempts at this puzzle. It locks you out permanently.")
    puzzle.attempts += 1
    if answer.strip().lower() == puzzle.solution.strip().lower():
        puzzle.solved = True
        message = f"Correct! You solve the {puzzle.name}."
        rewards = list(puzzle.reward)
        puzzle.reward = []
        if rewards:
            message += f" You find: {', '.join(item.name for item in rewards)}."
        return InteractionResult(True, message, items_found=rewards)
    message = "Incorrect answer."
    if puzzle.max_attempts is not None:
        remaining = max(0, puzzle.max_attempts - puzzle.attempts)
        message += f" You have {remaining} attempts remaining."
    if puzzle.penalty and rng.chance(PENALTY_CHANCE):
        message += f" {puzzle.penalty}"
    return InteractionResult(False, message)
