"""Domain models and helpers for the player character."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, MutableMapping, Optional, Sequence

import yaml

from crawler.serialization import as_int, mapping_field, records

__all__ = [
    "ABILITY_NAMES",
    "AVAILABLE_CLASSES",
    "DEFAULT_ABILITY_SCORES",
    "EQUIPMENT_SLOTS",
    "INVENTORY_CAPACITY",
    "ITEM_TYPES",
    "RARITIES",
    "AbilityScores",
    "Character",
    "CharacterClass",
    "ClassDataError",
    "Equipment",
    "Item",
    "ItemProperty",
    "StatusEffect",
    "ability_modifier",
    "create_character",
    "level_for_experience",
    "proficiency_bonus",
    "starting_mana",
]

ABILITY_NAMES: tuple[str, ...] = ("STR", "DEX", "CON", "INT", "WIS", "CHA")
DEFAULT_ABILITY_SCORES: Mapping[str, int] = {
    "STR": 14,
    "DEX": 13,
    "CON": 15,
    "INT": 12,
    "WIS": 14,
    "CHA": 10,
}
ITEM_TYPES: tuple[str, ...] = ("weapon", "armor", "shield", "potion", "accessory", "treasure", "key")
RARITIES: tuple[str, ...] = ("common", "uncommon", "rare", "epic", "legendary")
EQUIPMENT_SLOTS: tuple[str, ...] = ("weapon", "armor", "shield", "accessory")
INVENTORY_CAPACITY = 20
EXPERIENCE_PER_LEVEL = 100

_CLASS_DATA_PATH = Path(__file__).with_name("content") / "data" / "classes.yaml"


class ClassDataError(RuntimeError):
    """Raised when the class table fails validation."""


def ability_modifier(score: int) -> int:
    """Return the ability modifier for a given score."""

    return (int(score) - 10) // 2


def proficiency_bonus(level: int) -> int:
    return math.ceil(max(1, level) / 4) + 1


def level_for_experience(experience: int) -> int:
    return max(0, int(experience)) // EXPERIENCE_PER_LEVEL + 1


@dataclass(frozen=True)
class CharacterClass:
    key: str
    name: str
    primary_ability: str
    base_hit_points: int
    spellcasting_ability: str | None = None
    known_spells: tuple[str, ...] = ()
    starting_equipment: tuple[str, ...] = ()
    skill_bonuses: Mapping[str, int] = field(default_factory=dict)

    @property
    def is_spellcaster(self) -> bool:
        return self.spellcasting_ability is not None

    def skill_bonus(self, skill: str) -> int:
        return int(self.skill_bonuses.get(skill, 0))


@dataclass
class AbilityScores:
    """Six-stat block shared by characters and enemies."""

    values: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = sorted(set(self.values) - set(ABILITY_NAMES))
        if unknown:
            raise ValueError(f"Unknown ability '{unknown[0]}'")
        absent = [ability for ability in ABILITY_NAMES if ability not in self.values]
        if absent:
            raise ValueError(f"Ability scores need a value for {', '.join(absent)}")
        self.values = {ability: int(self.values[ability]) for ability in ABILITY_NAMES}

    def modifier(self, ability: str) -> int:
        return ability_modifier(self.values[ability.upper()])

    def to_dict(self) -> Dict[str, int]:
        return {ability: self.values[ability] for ability in ABILITY_NAMES}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "AbilityScores":
        return cls({str(key).upper(): as_int(value, str(key)) for key, value in data.items()})


@dataclass
class StatusEffect:
    """Timed modifier applied to a character or combat participant."""

    type: str
    duration: int
    modifier: int = 0
    damage_reduction: int = 0
    description: str = ""

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {"type": self.type, "duration": self.duration}
        if self.modifier:
            data["modifier"] = self.modifier
        if self.damage_reduction:
            data["damage_reduction"] = self.damage_reduction
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "StatusEffect":
        return cls(
            type=str(data["type"]),
            duration=int(data.get("duration", 0)),
            modifier=int(data.get("modifier", 0)),
            damage_reduction=int(data.get("damage_reduction", 0)),
            description=str(data.get("description", "")),
        )


@dataclass(frozen=True)
class ItemProperty:
    type: str
    value: int
    stat: str | None = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {"type": self.type, "value": self.value}
        if self.stat is not None:
            data["stat"] = self.stat
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "ItemProperty":
        stat = data.get("stat")
        return cls(
            type=str(data["type"]),
            value=int(data.get("value", 0)),
            stat=str(stat) if stat is not None else None,
        )


@dataclass
class Item:
    """Concrete item instance carried by a character or lying in a room."""

    id: str
    name: str
    item_type: str
    rarity: str = "common"
    description: str = ""
    properties: tuple[ItemProperty, ...] = ()
    key_id: str | None = None

    def __post_init__(self) -> None:
        if self.item_type not in ITEM_TYPES:
            raise ValueError(f"Unknown item type '{self.item_type}'")

    def property_total(self, property_type: str) -> int:
        return sum(prop.value for prop in self.properties if prop.type == property_type)

    @property
    def is_equippable(self) -> bool:
        return self.item_type in ("weapon", "armor", "shield", "accessory")

    @property
    def slot(self) -> str | None:
        return self.item_type if self.is_equippable else None

    def matches(self, text: str) -> bool:
        return text.strip().lower() in self.name.lower()

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "id": self.id,
            "name": self.name,
            "item_type": self.item_type,
            "rarity": self.rarity,
            "description": self.description,
            "properties": [prop.to_dict() for prop in self.properties],
        }
        if self.key_id is not None:
            data["key_id"] = self.key_id
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Item":
        key_id = data.get("key_id")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            item_type=str(data.get("item_type", "treasure")),
            rarity=str(data.get("rarity", "common")),
            description=str(data.get("description", "")),
            properties=tuple(records(data, "properties", ItemProperty.from_dict)),
            key_id=str(key_id) if key_id is not None else None,
        )


@dataclass
class Equipment:
    weapon: Optional[Item] = None
    armor: Optional[Item] = None
    shield: Optional[Item] = None
    accessory: Optional[Item] = None

    def get(self, slot: str) -> Optional[Item]:
        if slot not in EQUIPMENT_SLOTS:
            raise KeyError(slot)
        return getattr(self, slot)

    def set(self, slot: str, item: Optional[Item]) -> Optional[Item]:
        """Place ``item`` in ``slot`` and return whatever was there before."""

        previous = self.get(slot)
        setattr(self, slot, item)
        return previous

    def equipped(self) -> List[Item]:
        return [item for item in (self.weapon, self.armor, self.shield, self.accessory) if item]

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {}
        for slot in EQUIPMENT_SLOTS:
            item = getattr(self, slot)
            if item is not None:
                data[slot] = item.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Equipment":
        equipment = cls()
        for slot in EQUIPMENT_SLOTS:
            raw = data.get(slot)
            if isinstance(raw, Mapping):
                setattr(equipment, slot, Item.from_dict(raw))
        return equipment


@dataclass
class Character:
    """The player character, owned by the game state."""

    name: str
    class_key: str
    ability_scores: AbilityScores
    hp_current: int
    hp_max: int
    level: int = 1
    experience: int = 0
    mana_current: int | None = None
    mana_max: int | None = None
    equipment: Equipment = field(default_factory=Equipment)
    inventory: List[Item] = field(default_factory=list)
    status_effects: List[StatusEffect] = field(default_factory=list)
    gold: int = 0

    @property
    def character_class(self) -> CharacterClass:
        return AVAILABLE_CLASSES[self.class_key]

    @property
    def proficiency(self) -> int:
        return proficiency_bonus(self.level)

    @property
    def is_alive(self) -> bool:
        return self.hp_current > 0

    @property
    def has_mana(self) -> bool:
        return self.mana_max is not None

    @property
    def inventory_full(self) -> bool:
        return len(self.inventory) >= INVENTORY_CAPACITY

    def modifier(self, ability: str) -> int:
        """Ability modifier including stat bonuses from equipped items."""

        upper = ability.upper()
        bonus = sum(
            prop.value
            for item in self.equipment.equipped()
            for prop in item.properties
            if prop.type == "stat_bonus" and prop.stat == upper
        )
        return ability_modifier(self.ability_scores.values[upper] + bonus)

    def armor_class(self) -> int:
        total = 10 + self.modifier("DEX")
        for item in (self.equipment.armor, self.equipment.shield, self.equipment.accessory):
            if item is not None:
                total += item.property_total("ac_bonus")
        return total

    def heal(self, amount: int) -> int:
        """Restore up to ``amount`` hit points and return the amount healed."""

        healed = max(0, min(int(amount), self.hp_max - self.hp_current))
        self.hp_current += healed
        return healed

    def take_damage(self, amount: int) -> int:
        """Apply damage, keeping hit points at or above zero."""

        dealt = max(0, min(int(amount), self.hp_current))
        self.hp_current -= dealt
        return dealt

    def restore_mana(self, amount: int) -> int:
        if self.mana_max is None or self.mana_current is None:
            return 0
        restored = max(0, min(int(amount), self.mana_max - self.mana_current))
        self.mana_current += restored
        return restored

    def find_inventory_item(self, text: str) -> Optional[Item]:
        for item in self.inventory:
            if item.matches(text):
                return item
        return None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "name": self.name,
            "class": self.class_key,
            "level": self.level,
            "experience": self.experience,
            "ability_scores": self.ability_scores.to_dict(),
            "hp": {"current": self.hp_current, "max": self.hp_max},
            "equipment": self.equipment.to_dict(),
            "inventory": [item.to_dict() for item in self.inventory],
            "status_effects": [effect.to_dict() for effect in self.status_effects],
            "gold": self.gold,
        }
        if self.mana_max is not None:
            data["mana"] = {"current": self.mana_current, "max": self.mana_max}
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Character":
        class_key = str(data["class"]).lower()
        if class_key not in AVAILABLE_CLASSES:
            raise ValueError(f"Unknown character class '{class_key}'")
        hp = mapping_field(data, "hp", required=True)
        mana_raw = data.get("mana")
        mana_current = mana_max = None
        if isinstance(mana_raw, Mapping):
            mana_current = int(mana_raw.get("current", 0))
            mana_max = int(mana_raw.get("max", 0))
        return cls(
            name=str(data.get("name", "Adventurer")),
            class_key=class_key,
            level=int(data.get("level", 1)),
            experience=int(data.get("experience", 0)),
            ability_scores=AbilityScores.from_dict(mapping_field(data, "ability_scores", required=True)),
            hp_current=as_int(hp["current"], "hp.current"),
            hp_max=as_int(hp["max"], "hp.max"),
            mana_current=mana_current,
            mana_max=mana_max,
            equipment=Equipment.from_dict(mapping_field(data, "equipment")),
            inventory=records(data, "inventory", Item.from_dict),
            status_effects=records(data, "status_effects", StatusEffect.from_dict),
            gold=int(data.get("gold", 0)),
        )


def starting_mana(character_class: CharacterClass, scores: AbilityScores, level: int) -> int | None:
    if character_class.spellcasting_ability is None:
        return None
    return max(1, 1 + scores.modifier(character_class.spellcasting_ability) + level)


def create_character(
    name: str = "Adventurer",
    class_key: str = "fighter",
    *,
    ability_scores: Mapping[str, int] | None = None,
    starting_items: Sequence[Item] = (),
) -> Character:
    """Build a valid level one character.

    Hit points are the class base plus the constitution modifier; wizards and
    clerics also receive mana derived from their spellcasting ability.
    """

    key = class_key.strip().lower()
    if key not in AVAILABLE_CLASSES:
        raise ValueError(f"Unknown character class '{class_key}'")
    character_class = AVAILABLE_CLASSES[key]
    scores = AbilityScores.from_dict(ability_scores or DEFAULT_ABILITY_SCORES)
    hit_points = max(1, character_class.base_hit_points + scores.modifier("CON"))
    mana = starting_mana(character_class, scores, 1)
    character = Character(
        name=name.strip() or "Adventurer",
        class_key=key,
        ability_scores=scores,
        hp_current=hit_points,
        hp_max=hit_points,
        mana_current=mana,
        mana_max=mana,
    )
    for item in starting_items:
        if item.is_equippable and character.equipment.get(item.item_type) is None:
            character.equipment.set(item.item_type, item)
        else:
            character.inventory.append(item)
    return character


def _load_yaml(path: Path) -> object:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ClassDataError(f"Unable to read class data from {path}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ClassDataError(f"Failed to parse class data from {path}") from exc
    return data or []


def _require_mapping(name: str, value: object) -> MutableMapping[str, object]:
    if isinstance(value, MutableMapping):
        return value
    if isinstance(value, Mapping):
        return dict(value)
    raise ClassDataError(f"Expected mapping for {name}")


def _load_classes() -> Dict[str, CharacterClass]:
    raw = _load_yaml(_CLASS_DATA_PATH)
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
        raise ClassDataError("Class data must be a list of entries")
    classes: Dict[str, CharacterClass] = {}
    for entry in raw:
        mapping = _require_mapping("class entry", entry)
        key = str(mapping["key"]).lower()
        primary = str(mapping.get("primary_ability", "STR")).upper()
        if primary not in ABILITY_NAMES:
            raise ClassDataError(f"Unknown primary ability '{primary}' for class {key}")
        spell_ability = mapping.get("spellcasting_ability")
        classes[key] = CharacterClass(
            key=key,
            name=str(mapping.get("name", key.title())),
            primary_ability=primary,
            base_hit_points=int(mapping.get("base_hit_points", 10)),
            spellcasting_ability=str(spell_ability).upper() if spell_ability else None,
            known_spells=tuple(str(spell) for spell in mapping.get("known_spells", ()) or ()),
            starting_equipment=tuple(str(item) for item in mapping.get("starting_equipment", ()) or ()),
            skill_bonuses={
                str(skill): int(bonus)
                for skill, bonus in _require_mapping("skill_bonuses", mapping.get("skill_bonuses", {}) or {}).items()
            },
        )
    return classes


AVAILABLE_CLASSES: Dict[str, CharacterClass] = _load_classes()
