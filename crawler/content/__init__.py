"""Content schemas and registries for dungeon generation."""

from .loader import DEFAULT_CONTENT_PATH, ContentLibrary, ContentLoadError
from .models import (
    AbilityCondition,
    AffixTemplate,
    AttackTemplate,
    BehaviorProfile,
    ElementTemplate,
    EnemyAbility,
    ItemTemplate,
    LootEntry,
    MonsterTemplate,
    PropertyTemplate,
    PuzzleTemplate,
    RoomTemplate,
    SchemaError,
    SpellDefinition,
    TrapTemplate,
)
from .registry import (
    BaseRegistry,
    ItemRegistry,
    MonsterRegistry,
    RoomTemplateRegistry,
    SpellRegistry,
    TrapRegistry,
)

__all__ = [
    "DEFAULT_CONTENT_PATH",
    "AbilityCondition",
    "AffixTemplate",
    "AttackTemplate",
    "BaseRegistry",
    "BehaviorProfile",
    "ContentLibrary",
    "ContentLoadError",
    "ElementTemplate",
    "EnemyAbility",
    "ItemRegistry",
    "ItemTemplate",
    "LootEntry",
    "MonsterRegistry",
    "MonsterTemplate",
    "PropertyTemplate",
    "PuzzleTemplate",
    "RoomTemplate",
    "RoomTemplateRegistry",
    "SchemaError",
    "SpellDefinition",
    "SpellRegistry",
    "TrapRegistry",
    "TrapTemplate",
]
