"""Item generation from the packaged item and affix tables."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Sequence

from crawler.characters import RARITIES, Item, ItemProperty
from crawler.content import ContentLibrary, ItemTemplate
from crawler.rng import SeededRandom

from .models import Lock, LootTable

__all__ = ["CATEGORY_WEIGHTS", "ItemGenerator", "rarity_rank"]

log = logging.getLogger(__name__)

# Item category odds for each target rarity.
CATEGORY_WEIGHTS: Mapping[str, Mapping[str, float]] = {
    "common": {"weapon": 0.25, "armor": 0.15, "shield": 0.1, "consumable": 0.4, "treasure": 0.1},
    "uncommon": {"weapon": 0.25, "armor": 0.2, "shield": 0.1, "consumable": 0.3, "treasure": 0.1, "accessory": 0.05},
    "rare": {"weapon": 0.25, "armor": 0.2, "shield": 0.1, "consumable": 0.2, "treasure": 0.15, "accessory": 0.1},
    "epic": {"weapon": 0.3, "armor": 0.2, "shield": 0.05, "consumable": 0.1, "treasure": 0.2, "accessory": 0.15},
    "legendary": {"weapon": 0.3, "armor": 0.2, "shield": 0.05, "consumable": 0.05, "treasure": 0.25, "accessory": 0.15},
}
HOARD_RARITY_WEIGHTS: Mapping[str, float] = {
    "common": 0.2,
    "uncommon": 0.4,
    "rare": 0.3,
    "epic": 0.08,
    "legendary": 0.02,
}
KEY_NAMES: Mapping[str, str] = {
    "simple": "Iron Key",
    "complex": "Brass Key",
    "magical": "Runed Key",
    "keycard": "Keycard",
}
PREFIX_CHANCE = 0.6
SUFFIX_CHANCE = 0.4


def rarity_rank(rarity: str) -> int:
    try:
        return RARITIES.index(rarity)
    except ValueError:
        return 0


class ItemGenerator:
    """Turn item templates into concrete :class:`Item` instances.

    Identifiers are handed out from a counter so a generator driven by the
    same RNG produces identical items on every run.
    """

    def __init__(self, library: ContentLibrary, rng: SeededRandom, *, id_prefix: str = "item") -> None:
        self.library = library
        self.rng = rng
        self.id_prefix = id_prefix
        self._counter = 0

    def _next_id(self, prefix: str | None = None) -> str:
        self._counter += 1
        return f"{prefix or self.id_prefix}-{self._counter}"

    # -- single items ------------------------------------------------------
    def from_template(self, key: str, *, rarity: str | None = None) -> Item:
        template = self.library.items.get(key)
        return self._build(template, rarity or template.rarity, affixes=False)

    def generate_item(self, category: str, rarity: str = "common") -> Item:
        templates = self.library.items.by_category(category)
        if not templates:
            log.debug("No %s templates available, generating gold instead", category)
            return self.make_gold(self.rng.next_int(1, 10))
        target = rarity_rank(rarity)
        suitable = [template for template in templates if rarity_rank(template.rarity) <= target]
        template = self.rng.choose(suitable) if suitable else templates[0]
        return self._build(template, rarity, affixes=target >= 1)

    def generate_random_item(self, depth: int = 1, *, rarity: str | None = None) -> Item:
        rarity = rarity or self.roll_rarity(depth)
        weights = CATEGORY_WEIGHTS.get(rarity, CATEGORY_WEIGHTS["common"])
        category = self.rng.weighted_choice(weights)
        return self.generate_item(category, rarity)

    def make_gold(self, amount: int) -> Item:
        amount = max(1, int(amount))
        return Item(
            id=self._next_id("gold"),
            name=f"{amount} Gold Coins",
            item_type="treasure",
            description="A pile of gold coins.",
            properties=(ItemProperty("gold", amount),),
        )

    def make_key(self, lock: Lock) -> Item:
        key_id = lock.key_id or f"key-{lock.id}"
        name = KEY_NAMES.get(lock.type, "Key")
        return Item(
            id=key_id,
            name=name,
            item_type="key",
            rarity="uncommon" if lock.type in ("magical", "keycard") else "common",
            description=f"A {name.lower()} that fits a specific lock.",
            key_id=key_id,
        )

    # -- batches -----------------------------------------------------------
    def roll_rarity(self, depth: int, *, boss: bool = False) -> str:
        weights: Dict[str, float] = {
            "common": max(0.1, 0.7 - depth * 0.05),
            "uncommon": 0.2 + depth * 0.02,
            "rare": 0.08 + depth * 0.01,
            "epic": min(0.05, depth * 0.005),
            "legendary": min(0.02, depth * 0.002),
        }
        if boss:
            weights["common"] *= 0.5
            weights["rare"] *= 1.5
            weights["epic"] *= 2
            weights["legendary"] *= 3
        return self.rng.weighted_choice(weights)

    def generate_room_items(self, room_type: str, depth: int) -> List[Item]:
        if room_type == "armory":
            count = self.rng.next_int(1, 3)
            return [
                self.generate_item(self.rng.choose(("weapon", "weapon", "armor", "shield")), self.roll_rarity(depth))
                for _ in range(count)
            ]
        if room_type == "library":
            count = self.rng.next_int(1, 2)
            return [self.generate_item("consumable", self.roll_rarity(depth)) for _ in range(count)]
        if room_type == "corridor":
            return [self.generate_random_item(depth)] if self.rng.chance(0.15) else []
        if room_type in ("entrance", "treasure_room"):
            return []
        return [self.generate_random_item(depth)] if self.rng.chance(0.3) else []

    def generate_treasure_hoard(self, depth: int) -> List[Item]:
        size = self.rng.next_int(3, 8)
        items = [
            self.generate_random_item(depth, rarity=self.rng.weighted_choice(HOARD_RARITY_WEIGHTS))
            for _ in range(size)
        ]
        items.append(self.make_gold(self.rng.next_int(50, 200) + depth * 20))
        return items

    def generate_loot(self, level: int, *, boss: bool = False) -> LootTable:
        rarity = self.roll_rarity(level, boss=boss)
        base_count = 1 + min(2, rarity_rank(rarity)) + (2 if boss else 0)
        count = self.rng.next_int(1, base_count + 1)
        items = [self.generate_random_item(level, rarity=rarity) for _ in range(count)]
        gold = self.rng.next_int(level * 2, level * 10 + (50 if boss else 0))
        return LootTable(items=items, gold=gold)

    # -- helpers -----------------------------------------------------------
    def _build(self, template: ItemTemplate, rarity: str, *, affixes: bool) -> Item:
        name = template.name
        properties = [ItemProperty(prop.type, prop.value, prop.stat) for prop in template.properties]
        if affixes:
            name, extra = self._apply_affixes(template, name)
            properties.extend(extra)
        return Item(
            id=self._next_id(),
            name=name,
            item_type=template.item_type,
            rarity=rarity if rarity in RARITIES else template.rarity,
            description=template.description,
            properties=tuple(properties),
        )

    def _apply_affixes(self, template: ItemTemplate, name: str) -> tuple[str, Sequence[ItemProperty]]:
        prefixes = [affix for affix in self.library.affixes if affix.position == "prefix" and template.category in affix.categories]
        suffixes = [affix for affix in self.library.affixes if affix.position == "suffix" and template.category in affix.categories]
        extra: List[ItemProperty] = []
        if prefixes and self.rng.chance(PREFIX_CHANCE):
            prefix = self.rng.choose(prefixes)
            name = f"{prefix.name} {name}"
            extra.extend(ItemProperty(prop.type, prop.value, prop.stat) for prop in prefix.properties)
        if suffixes and self.rng.chance(SUFFIX_CHANCE):
            suffix = self.rng.choose(suffixes)
            name = f"{name} {suffix.name}"
            extra.extend(ItemProperty(prop.type, prop.value, prop.stat) for prop in suffix.properties)
        return name, extra
