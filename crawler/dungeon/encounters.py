"""Enemy encounters scaled by dungeon depth."""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Mapping

from crawler.characters import ABILITY_NAMES, AbilityScores
from crawler.content import ContentLibrary, MonsterTemplate
from crawler.rng import SeededRandom

from .loot import ItemGenerator
from .models import Enemy, EnemyAttack, LootTable

__all__ = ["ENCOUNTER_CHANCES", "EnemyGenerator", "encounter_level"]

log = logging.getLogger(__name__)

ENCOUNTER_CHANCES: Mapping[str, float] = {
    "treasure_room": 0.8,
    "armory": 0.6,
    "library": 0.6,
    "corridor": 0.2,
}
DEFAULT_ENCOUNTER_CHANCE = 0.4
MAX_ENCOUNTER_CHANCE = 0.8
FALLBACK_MONSTER = "orc"


def encounter_level(depth: int) -> int:
    return min(3, max(1, math.ceil(depth / 3)))


class EnemyGenerator:
    """Build :class:`Enemy` instances from monster templates."""

    def __init__(self, library: ContentLibrary, rng: SeededRandom, items: ItemGenerator) -> None:
        self.library = library
        self.rng = rng
        self.items = items
        self._counter = 0

    def should_have_encounter(self, room_type: str, depth: int) -> bool:
        if room_type == "entrance":
            return False
        chance = ENCOUNTER_CHANCES.get(room_type, DEFAULT_ENCOUNTER_CHANCE) + depth * 0.05
        return self.rng.chance(min(MAX_ENCOUNTER_CHANCE, chance))

    def generate_encounter(self, depth: int) -> List[Enemy]:
        template = self._select_template(depth)
        count = 1
        if self.rng.chance(min(0.6, depth * 0.1)):
            count = self.rng.next_int(1, min(3, max(1, depth // 2)))
        return [self.generate_enemy(template, depth) for _ in range(count)]

    def generate_boss(self, depth: int) -> Enemy:
        candidates = self.library.monsters.bosses(depth)
        if not candidates:
            log.debug("No boss available at depth %d, using a scaled %s", depth, FALLBACK_MONSTER)
            template = self.library.monsters.get(FALLBACK_MONSTER)
            enemy = self.generate_enemy(template, max(3, depth))
            enemy.is_boss = True
            enemy.loot = self.items.generate_loot(enemy.level, boss=True)
            return enemy
        template = self.rng.choose(candidates)
        return self.generate_enemy(template, max(depth, template.level))

    def generate_enemy(self, template: MonsterTemplate, level: int) -> Enemy:
        level = max(1, level)
        steps = level - template.level
        bump = math.floor(steps * 0.5)
        scale = max(0.5, level / template.level)
        scores = {ability: template.ability_scores.get(ability, 10) for ability in ABILITY_NAMES}
        for ability in ("STR", "DEX", "CON"):
            scores[ability] = math.floor(scores[ability] + steps * 0.5)
        hit_points = max(1, math.floor(template.hit_points * scale))
        self._counter += 1
        return Enemy(
            id=f"{template.key}-{self._counter}",
            name=template.name,
            kind=template.kind,
            level=level,
            ability_scores=AbilityScores(scores),
            hp_current=hit_points,
            hp_max=hit_points,
            armor_class=math.floor(template.armor_class + steps * 0.5),
            attacks=[
                EnemyAttack(attack.name, attack.damage, attack.hit_bonus + bump, attack.verb)
                for attack in template.attacks
            ],
            behavior=template.behavior,
            loot=self._roll_loot(template, level),
            abilities=list(template.abilities),
            resources=self._resources(template, level),
            description=template.description,
            is_boss=template.is_boss,
        )

    # -- helpers -----------------------------------------------------------
    def _select_template(self, depth: int) -> MonsterTemplate:
        level = encounter_level(depth)
        roll = self.rng.next()
        if roll < 0.7:
            rarity = "common"
        elif roll < 0.9:
            rarity = "uncommon"
        else:
            rarity = "rare"
        pool = self.library.monsters.by_rarity(rarity, level) or self.library.monsters.by_rarity("common", level)
        if not pool:
            return self.library.monsters.get(FALLBACK_MONSTER)
        return self.rng.choose(pool)

    def _roll_loot(self, template: MonsterTemplate, level: int) -> LootTable:
        if template.is_boss:
            loot = self.items.generate_loot(level, boss=True)
        else:
            loot = LootTable()
        for entry in template.loot:
            if self.rng.chance(entry.chance):
                loot.items.append(self.items.from_template(entry.item))
        low, high = template.gold
        loot.gold += self.rng.next_int(low, high) if high > 0 else 0
        return loot

    def _resources(self, template: MonsterTemplate, level: int) -> Dict[str, int]:
        resources = dict(template.resources)
        if template.kind == "dragon":
            resources["energy"] = resources.get("energy", 0) + 20 + level * 5
        elif template.kind == "orc":
            resources["rage"] = resources.get("rage", 0)
        elif template.kind in ("skeleton", "bandit") and "mana" not in resources:
            if self.rng.chance(0.3):
                resources["mana"] = 10 + level * 2
        return resources
