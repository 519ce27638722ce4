"""Lock picking and keys."""

from __future__ import annotations

from typing import Mapping, Tuple

from crawler.characters import Character, Item
from crawler.dice import DiceSource
from crawler.dungeon.models import Lock
from crawler.errors import RuleViolation
from crawler.rng import SeededRandom

from .checks import InteractionResult, class_skill_bonus, skill_check

__all__ = ["LOCK_DIFFICULTIES", "LOCK_TYPE_WEIGHTS", "generate_lock", "pick_lock", "use_key"]

LOCK_DIFFICULTIES: Mapping[str, Tuple[int, int]] = {
    "simple": (10, 14),
    "complex": (15, 18),
    "magical": (18, 20),
    "keycard": (20, 20),
}
LOCK_TYPE_WEIGHTS: Mapping[str, float] = {"simple": 0.5, "complex": 0.3, "magical": 0.15, "keycard": 0.05}
JAM_THRESHOLD = 3
JAM_PENALTY = 5


def generate_lock(rng: SeededRandom, lock_id: str) -> Lock:
    lock_type = rng.weighted_choice(LOCK_TYPE_WEIGHTS)
    low, high = LOCK_DIFFICULTIES[lock_type]
    return Lock(id=lock_id, type=lock_type, difficulty=rng.next_int(low, high), key_id=f"key-{lock_id}")


def pick_lock(character: Character, lock: Lock, rng: DiceSource) -> InteractionResult:
    if lock.unlocked:
        raise RuleViolation("This lock is already unlocked.")
    check = skill_check(character, "DEX", lock.difficulty, rng, class_bonus=class_skill_bonus(character, "pick_lock"))
    lock.attempts += 1
    if check.success:
        lock.unlocked = True
        return InteractionResult(True, f"Successfully picked the lock! {check.describe()}")
    message = f"Failed to pick the lock. {check.describe()}"
    if lock.type == "complex" and lock.attempts >= JAM_THRESHOLD:
        lock.difficulty += JAM_PENALTY
        message += " The lock mechanism jams from too many failed attempts!"
    return InteractionResult(False, message)


def use_key(character: Character, lock: Lock, key: Item) -> InteractionResult:
    if lock.unlocked:
        raise RuleViolation("This lock is already unlocked.")
    if key.key_id is None or key.key_id != lock.key_id:
        raise RuleViolation("This key doesn't fit this lock.")
    if all(item.id != key.id for item in character.inventory):
        raise RuleViolation("You don't have the required key.")
    lock.unlocked = True
    return InteractionResult(True, "The key fits perfectly! The lock opens with a satisfying click.")
