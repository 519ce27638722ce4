"""Schema models for static game content."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, MutableMapping, Optional, Sequence

__all__ = [
    "AbilityCondition",
    "AffixTemplate",
    "AttackTemplate",
    "BehaviorProfile",
    "ElementTemplate",
    "EnemyAbility",
    "ItemTemplate",
    "LootEntry",
    "MonsterTemplate",
    "PropertyTemplate",
    "PuzzleTemplate",
    "RoomTemplate",
    "SchemaError",
    "SpellDefinition",
    "TrapTemplate",
]

ITEM_CATEGORIES = ("weapon", "armor", "shield", "consumable", "treasure", "accessory")
ENCOUNTER_RARITIES = ("common", "uncommon", "rare")
ARCHETYPES = ("berserker", "tactical", "defensive", "cowardly", "pack_hunter", "spellcaster", "boss")
CONDITION_TYPES = ("health_percentage", "ally_count", "enemy_count", "round_number")
CONDITION_OPERATORS = ("less_than", "greater_than", "equals", "not_equals")
TRAP_TYPES = ("poison_dart", "pit", "spike", "fire", "magic", "alarm")
TRAP_EFFECTS = ("damage", "poison", "paralysis", "alarm", "teleport")
PUZZLE_TYPES = ("riddle", "sequence", "symbol", "math", "word")
ELEMENT_TARGETS = ("character", "room", "door", "spawn_items", "teleport")
ROOM_EFFECTS = ("open_passage", "clear_hazards")


class SchemaError(ValueError):
    """Raised when content data fails validation."""


def _coerce_mapping(name: str, value: object) -> MutableMapping[str, object]:
    if isinstance(value, MutableMapping):
        return value
    if isinstance(value, Mapping):
        return dict(value)
    raise SchemaError(f"{name} must be a mapping")


def _coerce_sequence(name: str, value: object) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return value
    raise SchemaError(f"{name} must be a sequence")


def _coerce_choice(name: str, value: object, choices: Sequence[str]) -> str:
    text = str(value).strip().lower()
    if text not in choices:
        raise SchemaError(f"{name} must be one of: {', '.join(choices)} (got '{value}')")
    return text


def _coerce_tags(mapping: Mapping[str, object]) -> tuple[str, ...]:
    tags_raw = mapping.get("tags", ())
    if not tags_raw:
        return ()
    return tuple(str(tag) for tag in _coerce_sequence("tags", tags_raw))


def _optional_int(value: object) -> Optional[int]:
    if value is None:
        return None
    return int(value)


@dataclass(frozen=True)
class PropertyTemplate:
    type: str
    value: int
    stat: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "PropertyTemplate":
        mapping = _coerce_mapping("property", data)
        if "type" not in mapping:
            raise SchemaError("property entries require a type")
        stat = mapping.get("stat")
        return cls(
            type=str(mapping["type"]),
            value=int(mapping.get("value", 0)),
            stat=str(stat).upper() if stat else None,
        )


def _coerce_properties(mapping: Mapping[str, object]) -> tuple[PropertyTemplate, ...]:
    raw = mapping.get("properties", ())
    if not raw:
        return ()
    return tuple(PropertyTemplate.from_mapping(entry) for entry in _coerce_sequence("properties", raw))


@dataclass(frozen=True)
class ItemTemplate:
    """Base item that the item generator can turn into concrete items."""

    key: str
    name: str
    category: str
    item_type: str
    rarity: str = "common"
    description: str = ""
    properties: Sequence[PropertyTemplate] = field(default_factory=tuple)
    tags: Sequence[str] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "ItemTemplate":
        mapping = _coerce_mapping("item", data)
        category = _coerce_choice("item category", mapping.get("category", "treasure"), ITEM_CATEGORIES)
        default_type = "potion" if category == "consumable" else category
        return cls(
            key=str(key).lower(),
            name=str(mapping.get("name") or key),
            category=category,
            item_type=str(mapping.get("item_type", default_type)),
            rarity=str(mapping.get("rarity", "common")).lower(),
            description=str(mapping.get("description", "")),
            properties=_coerce_properties(mapping),
            tags=_coerce_tags(mapping),
        )


@dataclass(frozen=True)
class AffixTemplate:
    """Magical prefix or suffix applied to generated equipment."""

    key: str
    name: str
    position: str
    categories: Sequence[str]
    properties: Sequence[PropertyTemplate] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "AffixTemplate":
        mapping = _coerce_mapping("affix", data)
        position = _coerce_choice("affix position", mapping.get("position", "prefix"), ("prefix", "suffix"))
        categories_raw = mapping.get("categories", ("weapon", "armor", "shield"))
        categories = tuple(
            _coerce_choice("affix category", value, ITEM_CATEGORIES)
            for value in _coerce_sequence("categories", categories_raw)
        )
        return cls(
            key=str(key).lower(),
            name=str(mapping.get("name") or key),
            position=position,
            categories=categories,
            properties=_coerce_properties(mapping),
        )


@dataclass(frozen=True)
class AttackTemplate:
    name: str
    damage: str
    hit_bonus: int
    verb: str = "attacks"

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "AttackTemplate":
        mapping = _coerce_mapping("attack", data)
        return cls(
            name=str(mapping.get("name", "Strike")),
            damage=str(mapping.get("damage", "1d4")),
            hit_bonus=int(mapping.get("hit_bonus", 0)),
            verb=str(mapping.get("verb", "attacks")),
        )


@dataclass(frozen=True)
class LootEntry:
    item: str
    chance: float

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "LootEntry":
        mapping = _coerce_mapping("loot entry", data)
        if "item" not in mapping:
            raise SchemaError("loot entries require an item")
        chance = float(mapping.get("chance", 1.0))
        if not 0.0 <= chance <= 1.0:
            raise SchemaError("loot chance must be between 0 and 1")
        return cls(item=str(mapping["item"]).lower(), chance=chance)


@dataclass(frozen=True)
class MonsterTemplate:
    """Static data describing an enemy species."""

    key: str
    name: str
    kind: str
    level: int
    rarity: str
    hit_points: int
    armor_class: int
    ability_scores: Mapping[str, int]
    attacks: Sequence[AttackTemplate]
    behavior: str
    description: str = ""
    is_boss: bool = False
    loot: Sequence[LootEntry] = field(default_factory=tuple)
    gold: tuple[int, int] = (0, 0)
    abilities: Sequence[str] = field(default_factory=tuple)
    resources: Mapping[str, int] = field(default_factory=dict)
    tags: Sequence[str] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "MonsterTemplate":
        mapping = _coerce_mapping("monster", data)
        ability_scores: dict[str, int] = {}
        ability_raw = mapping.get("ability_scores", {})
        if ability_raw:
            for ability, score in _coerce_mapping("ability_scores", ability_raw).items():
                ability_scores[str(ability).upper()] = int(score)
        attacks_raw = mapping.get("attacks", ())
        attacks = tuple(
            AttackTemplate.from_mapping(entry) for entry in _coerce_sequence("attacks", attacks_raw or ())
        )
        loot_raw = mapping.get("loot", ())
        loot = tuple(LootEntry.from_mapping(entry) for entry in _coerce_sequence("loot", loot_raw or ()))
        gold_raw = mapping.get("gold", (0, 0))
        gold_values = _coerce_sequence("gold", gold_raw)
        if len(gold_values) != 2:
            raise SchemaError("gold must be a [min, max] pair")
        abilities_raw = mapping.get("abilities", ())
        abilities = tuple(str(value).lower() for value in _coerce_sequence("abilities", abilities_raw or ()))
        resources_raw = mapping.get("resources", {})
        resources = {
            str(name): int(value)
            for name, value in _coerce_mapping("resources", resources_raw or {}).items()
        }
        kind = str(mapping.get("kind") or key).lower()
        return cls(
            key=str(key).lower(),
            name=str(mapping.get("name") or key),
            kind=kind,
            level=max(1, int(mapping.get("level", 1))),
            rarity=_coerce_choice("monster rarity", mapping.get("rarity", "common"), ENCOUNTER_RARITIES),
            hit_points=max(1, int(mapping.get("hit_points", 1))),
            armor_class=int(mapping.get("armor_class", 10)),
            ability_scores=ability_scores,
            attacks=attacks,
            behavior=str(mapping.get("behavior", kind)).lower(),
            description=str(mapping.get("description", "")),
            is_boss=bool(mapping.get("boss", False)),
            loot=loot,
            gold=(int(gold_values[0]), int(gold_values[1])),
            abilities=abilities,
            resources=resources,
            tags=_coerce_tags(mapping),
        )


@dataclass(frozen=True)
class AbilityCondition:
    type: str
    operator: str
    value: float

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "AbilityCondition":
        mapping = _coerce_mapping("condition", data)
        return cls(
            type=_coerce_choice("condition type", mapping.get("type", ""), CONDITION_TYPES),
            operator=_coerce_choice("condition operator", mapping.get("operator", ""), CONDITION_OPERATORS),
            value=float(mapping.get("value", 0)),
        )

    def holds(self, observed: float) -> bool:
        if self.operator == "less_than":
            return observed < self.value
        if self.operator == "greater_than":
            return observed > self.value
        if self.operator == "equals":
            return observed == self.value
        return observed != self.value


@dataclass(frozen=True)
class EnemyAbility:
    """Special action an enemy AI may choose instead of a basic attack."""

    key: str
    name: str
    effect: str
    dice: str
    cooldown: int
    priority: int
    description: str = ""
    conditions: Sequence[AbilityCondition] = field(default_factory=tuple)
    costs: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "EnemyAbility":
        mapping = _coerce_mapping("ability", data)
        conditions_raw = mapping.get("conditions", ())
        costs_raw = mapping.get("costs", {})
        return cls(
            key=str(key).lower(),
            name=str(mapping.get("name") or key),
            effect=_coerce_choice("ability effect", mapping.get("effect", "damage"), ("damage", "heal", "buff")),
            dice=str(mapping.get("dice", "1d6")),
            cooldown=max(0, int(mapping.get("cooldown", 0))),
            priority=int(mapping.get("priority", 50)),
            description=str(mapping.get("description", "")),
            conditions=tuple(
                AbilityCondition.from_mapping(entry)
                for entry in _coerce_sequence("conditions", conditions_raw or ())
            ),
            costs={
                str(name): int(value)
                for name, value in _coerce_mapping("costs", costs_raw or {}).items()
            },
        )


@dataclass(frozen=True)
class BehaviorProfile:
    """Weights steering how an enemy species picks its actions."""

    key: str
    archetype: str
    aggressiveness: float
    self_preservation: float
    tactical_awareness: float
    ability_usage: float
    group_coordination: float
    environmental_awareness: float

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "BehaviorProfile":
        mapping = _coerce_mapping("behavior", data)
        weights: Dict[str, float] = {}
        for name in (
            "aggressiveness",
            "self_preservation",
            "tactical_awareness",
            "ability_usage",
            "group_coordination",
            "environmental_awareness",
        ):
            value = float(mapping.get(name, 0.5))
            if not 0.0 <= value <= 1.0:
                raise SchemaError(f"{name} must be between 0 and 1")
            weights[name] = value
        return cls(
            key=str(key).lower(),
            archetype=_coerce_choice("archetype", mapping.get("archetype", "tactical"), ARCHETYPES),
            **weights,
        )


@dataclass(frozen=True)
class TrapTemplate:
    key: str
    name: str
    description: str
    type: str
    detection_dc: int
    disarm_dc: int
    damage: str | None
    effect: str

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "TrapTemplate":
        mapping = _coerce_mapping("trap", data)
        damage = mapping.get("damage")
        return cls(
            key=str(key).lower(),
            name=str(mapping.get("name") or key),
            description=str(mapping.get("description", "")),
            type=_coerce_choice("trap type", mapping.get("type", "spike"), TRAP_TYPES),
            detection_dc=int(mapping.get("detection_dc", 12)),
            disarm_dc=int(mapping.get("disarm_dc", 12)),
            damage=str(damage) if damage is not None else None,
            effect=_coerce_choice("trap effect", mapping.get("effect", "damage"), TRAP_EFFECTS),
        )


@dataclass(frozen=True)
class PuzzleTemplate:
    key: str
    name: str
    description: str
    type: str
    solution: str
    max_attempts: int
    penalty: str | None = None

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "PuzzleTemplate":
        mapping = _coerce_mapping("puzzle", data)
        if "solution" not in mapping:
            raise SchemaError("puzzles require a solution")
        penalty = mapping.get("penalty")
        return cls(
            key=str(key).lower(),
            name=str(mapping.get("name") or key),
            description=str(mapping.get("description", "")),
            type=_coerce_choice("puzzle type", mapping.get("type", "riddle"), PUZZLE_TYPES),
            solution=str(mapping["solution"]),
            max_attempts=max(1, int(mapping.get("max_attempts", 3))),
            penalty=str(penalty) if penalty else None,
        )


@dataclass(frozen=True)
class ElementTemplate:
    """Interactive room element such as a lever, fountain or altar."""

    key: str
    name: str
    description: str
    room_types: Sequence[str]
    effect_target: str
    effect_description: str
    uses: int | None = None
    skill: str | None = None
    dc_offset: int | None = None
    cooldown: int | None = None
    requires_item: str | None = None
    heal: str | None = None
    damage: str | None = None
    status_effect: Mapping[str, object] | None = None
    spawn_category: str | None = None
    room_effect: str | None = None

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "ElementTemplate":
        mapping = _coerce_mapping("element", data)
        effect = _coerce_mapping("effect", mapping.get("effect", {}))
        skill = mapping.get("skill")
        status_raw = effect.get("status_effect")
        status_effect = dict(_coerce_mapping("status_effect", status_raw)) if status_raw else None
        requires = mapping.get("requires_item")
        heal = effect.get("heal")
        damage = effect.get("damage")
        spawn = effect.get("spawn_category")
        room_effect = effect.get("room_effect")
        room_types_raw = mapping.get("room_types", ())
        return cls(
            key=str(key).lower(),
            name=str(mapping.get("name") or key),
            description=str(mapping.get("description", "")),
            room_types=tuple(str(value) for value in _coerce_sequence("room_types", room_types_raw or ())),
            effect_target=_coerce_choice("effect target", effect.get("target", "character"), ELEMENT_TARGETS),
            effect_description=str(effect.get("description", "")),
            uses=_optional_int(mapping.get("uses")),
            skill=str(skill).upper() if skill else None,
            dc_offset=_optional_int(mapping.get("dc_offset")),
            cooldown=_optional_int(mapping.get("cooldown")),
            requires_item=str(requires) if requires else None,
            heal=str(heal) if heal else None,
            damage=str(damage) if damage else None,
            status_effect=status_effect,
            spawn_category=str(spawn) if spawn else None,
            room_effect=_coerce_choice("room effect", room_effect, ROOM_EFFECTS) if room_effect else None,
        )


@dataclass(frozen=True)
class SpellDefinition:
    key: str
    name: str
    mana_cost: int
    effect: str
    description: str = ""
    dice: str | None = None
    auto_hit: bool = False
    status_effect: Mapping[str, object] | None = None

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "SpellDefinition":
        mapping = _coerce_mapping("spell", data)
        dice = mapping.get("dice")
        status_raw = mapping.get("status_effect")
        return cls(
            key=str(key).lower(),
            name=str(mapping.get("name") or key),
            mana_cost=max(0, int(mapping.get("mana_cost", 1))),
            effect=_coerce_choice("spell effect", mapping.get("effect", "damage"), ("damage", "heal", "buff")),
            description=str(mapping.get("description", "")),
            dice=str(dice) if dice else None,
            auto_hit=bool(mapping.get("auto_hit", False)),
            status_effect=dict(_coerce_mapping("status_effect", status_raw)) if status_raw else None,
        )


@dataclass(frozen=True)
class RoomTemplate:
    """Static description attached to a room type."""

    key: str
    room_type: str
    name: str
    description: str

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "RoomTemplate":
        mapping = _coerce_mapping("room_template", data)
        if "room_type" not in mapping:
            raise SchemaError("room templates require a room_type")
        return cls(
            key=str(key).lower(),
            room_type=str(mapping["room_type"]).lower(),
            name=str(mapping.get("name", "Unknown Room")),
            description=str(mapping.get("description", "")),
        )
