"""Deterministic pseudo-random source shared by every generator."""

from __future__ import annotations

import math
import random
from typing import List, Mapping, Sequence, TypeVar, Union

__all__ = ["EmptyInputError", "SeededRandom", "hash_seed"]

T = TypeVar("T")

_MULTIPLIER = 9301
_INCREMENT = 49297
_MODULUS = 233280

SeedLike = Union[int, str, None]


class EmptyInputError(ValueError):
    """Raised when a random choice is requested from an empty sequence."""


def hash_seed(text: str) -> int:
    """Hash ``text`` into a non-negative 32-bit seed."""

    value = 0
    for char in text:
        value = ((value << 5) - value) + ord(char)
        # Keep the accumulator inside a signed 32-bit range.
        value = (value + 2**31) % 2**32 - 2**31
    return abs(value)


def _normalise_seed(seed: SeedLike) -> int:
    if seed is None:
        return math.floor(random.random() * 1_000_000)
    if isinstance(seed, str):
        return hash_seed(seed)
    return abs(int(seed)) % 2**32


class SeededRandom:
    """Linear congruential generator with a small, reproducible state.

    Identical seeds produce identical sequences of draws, so every generator
    consuming the same instance in the same order reproduces its output
    exactly. The instance also exposes ``randint`` so it can be handed to
    helpers written against :class:`random.Random`.
    """

    def __init__(self, seed: SeedLike = None) -> None:
        self.initial_seed = _normalise_seed(seed)
        self._state = self.initial_seed

    @property
    def state(self) -> int:
        return self._state

    @classmethod
    def from_state(cls, initial_seed: int, state: int) -> "SeededRandom":
        generator = cls(initial_seed)
        generator._state = int(state)
        return generator

    def next(self) -> float:
        self._state = (self._state * _MULTIPLIER + _INCREMENT) % _MODULUS
        return self._state / _MODULUS

    def next_int(self, minimum: int, maximum: int) -> int:
        if maximum < minimum:
            minimum, maximum = maximum, minimum
        return math.floor(self.next() * (maximum - minimum + 1)) + minimum

    def randint(self, minimum: int, maximum: int) -> int:
        return self.next_int(minimum, maximum)

    def choose(self, items: Sequence[T]) -> T:
        if not items:
            raise EmptyInputError("Cannot choose from an empty sequence")
        return items[self.next_int(0, len(items) - 1)]

    def shuffle(self, items: Sequence[T]) -> List[T]:
        shuffled = list(items)
        for index in range(len(shuffled) - 1, 0, -1):
            swap = self.next_int(0, index)
            shuffled[index], shuffled[swap] = shuffled[swap], shuffled[index]
        return shuffled

    def chance(self, probability: float) -> bool:
        return self.next() < probability

    def weighted_choice(self, entries: Mapping[T, float]) -> T:
        """Pick a key from ``entries`` proportionally to its weight."""

        population = [(key, float(weight)) for key, weight in entries.items() if weight > 0]
        if not population:
            raise EmptyInputError("Cannot choose from an empty weight table")
        total = sum(weight for _, weight in population)
        roll = self.next() * total
        for key, weight in population:
            roll -= weight
            if roll < 0:
                return key
        return population[-1][0]
