"""Registries for game content."""

from __future__ import annotations

from typing import Dict, Generic, Iterable, Iterator, List, Optional, TypeVar

from crawler.rng import SeededRandom

from .models import ItemTemplate, MonsterTemplate, RoomTemplate, SpellDefinition, TrapTemplate

__all__ = [
    "BaseRegistry",
    "ItemRegistry",
    "MonsterRegistry",
    "RoomTemplateRegistry",
    "SpellRegistry",
    "TrapRegistry",
]

T = TypeVar("T")


def _lookup_name(value: str) -> str:
    return " ".join(value.replace("_", " ").split()).lower()


class BaseRegistry(Generic[T]):
    """Content entries keyed by their table key, in load order.

    Lookups ignore case, surrounding whitespace and the difference between
    ``_`` and a space, so ``"magic_missile"`` and ``"Magic Missile"`` agree.
    """

    def __init__(self) -> None:
        self._by_key: Dict[str, T] = {}
        self._names: Dict[str, str] = {}

    def lookup_names(self, key: str, entry: T) -> Iterable[str]:
        return (key,)

    def register(self, key: str, entry: T) -> None:
        if key in self._by_key:
            raise ValueError(f"Duplicate entry '{key}'")
        self._by_key[key] = entry
        for name in self.lookup_names(key, entry):
            self._names.setdefault(_lookup_name(name), key)

    def find(self, name: str) -> Optional[T]:
        key = self._names.get(_lookup_name(name or ""))
        return self._by_key.get(key) if key is not None else None

    def get(self, name: str) -> T:
        entry = self.find(name)
        if entry is None:
            raise KeyError(f"Unknown entry '{name}'")
        return entry

    def keys(self) -> List[str]:
        return list(self._by_key)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and _lookup_name(name) in self._names

    def __iter__(self) -> Iterator[T]:
        return iter(self._by_key.values())

    def __len__(self) -> int:
        return len(self._by_key)

    def random_choice(self, rng: SeededRandom) -> T:
        if not self._by_key:
            raise LookupError("Registry is empty")
        return rng.choose(list(self._by_key.values()))


class _NamedRegistry(BaseRegistry[T]):
    """Registry whose entries can also be looked up by display name."""

    def lookup_names(self, key: str, entry: T) -> Iterable[str]:
        return (key, getattr(entry, "name", key))


class MonsterRegistry(_NamedRegistry[MonsterTemplate]):
    """Registry responsible for storing enemy species."""

    def by_rarity(self, rarity: str, level: int) -> List[MonsterTemplate]:
        return [
            monster
            for monster in self
            if monster.rarity == rarity and monster.level <= level and not monster.is_boss
        ]

    def bosses(self, max_level: int) -> List[MonsterTemplate]:
        return [monster for monster in self if monster.is_boss and monster.level <= max_level]


class ItemRegistry(_NamedRegistry[ItemTemplate]):
    """Registry responsible for storing item templates."""

    def by_category(self, category: str, rarity: str | None = None) -> List[ItemTemplate]:
        return [
            item
            for item in self
            if item.category == category and (rarity is None or item.rarity == rarity)
        ]


class TrapRegistry(_NamedRegistry[TrapTemplate]):
    """Registry responsible for storing traps."""


class SpellRegistry(_NamedRegistry[SpellDefinition]):
    """Registry responsible for storing spells."""


class RoomTemplateRegistry(BaseRegistry[RoomTemplate]):
    """Registry of room descriptions keyed by template id."""

    def for_room_type(self, room_type: str) -> Optional[RoomTemplate]:
        for template in self:
            if template.room_type == room_type:
                return template
        return None
