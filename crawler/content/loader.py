"""Read the YAML content tables into validated registries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Mapping, NamedTuple, TypeVar

import yaml

from .models import (
    AffixTemplate,
    BehaviorProfile,
    ElementTemplate,
    EnemyAbility,
    ItemTemplate,
    MonsterTemplate,
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

__all__ = ["DEFAULT_CONTENT_PATH", "ContentLibrary", "ContentLoadError"]

log = logging.getLogger(__name__)

DEFAULT_CONTENT_PATH = Path(__file__).with_name("data")

T = TypeVar("T")
R = TypeVar("R", bound=BaseRegistry)


class _Entry(NamedTuple):
    path: Path
    key: str
    row: Dict[str, object]


class ContentLoadError(RuntimeError):
    """Raised when content could not be loaded from disk."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        if path is not None:
            message = f"{message} (source: {path})"
        super().__init__(message)
        self.path = path


@dataclass(frozen=True)
class ContentLibrary:
    """Container bundling all loaded content registries."""

    base_path: Path
    monsters: MonsterRegistry
    abilities: BaseRegistry[EnemyAbility]
    behaviors: BaseRegistry[BehaviorProfile]
    items: ItemRegistry
    affixes: BaseRegistry[AffixTemplate]
    traps: TrapRegistry
    puzzles: BaseRegistry[PuzzleTemplate]
    elements: BaseRegistry[ElementTemplate]
    spells: SpellRegistry
    rooms: RoomTemplateRegistry

    @classmethod
    def load_from_path(cls, base_path: Path) -> "ContentLibrary":
        loader = _ContentLoader(Path(base_path))
        return loader.load()

    @classmethod
    def load_default(cls) -> "ContentLibrary":
        return cls.load_from_path(DEFAULT_CONTENT_PATH)


class _ContentLoader:
    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path

    # -- public entrypoint -------------------------------------------------
    def load(self) -> ContentLibrary:
        if not self.base_path.is_dir():
            raise ContentLoadError("Content directory does not exist", path=self.base_path)
        items = self._load_category("items", ItemTemplate.from_mapping, ItemRegistry())
        abilities = self._load_category("abilities", EnemyAbility.from_mapping, BaseRegistry())
        behaviors = self._load_category("behaviors", BehaviorProfile.from_mapping, BaseRegistry())
        monsters = self._load_category("monsters", MonsterTemplate.from_mapping, MonsterRegistry())
        self._validate_monsters(monsters, abilities, behaviors, items)
        library = ContentLibrary(
            base_path=self.base_path,
            monsters=monsters,
            abilities=abilities,
            behaviors=behaviors,
            items=items,
            affixes=self._load_category("affixes", AffixTemplate.from_mapping, BaseRegistry()),
            traps=self._load_category("traps", TrapTemplate.from_mapping, TrapRegistry()),
            puzzles=self._load_category("puzzles", PuzzleTemplate.from_mapping, BaseRegistry()),
            elements=self._load_category("elements", ElementTemplate.from_mapping, BaseRegistry()),
            spells=self._load_category("spells", SpellDefinition.from_mapping, SpellRegistry()),
            rooms=self._load_category("rooms", RoomTemplate.from_mapping, RoomTemplateRegistry()),
        )
        log.debug(
            "Loaded content from %s: %d monsters, %d items, %d traps",
            self.base_path,
            len(monsters),
            len(items),
            len(library.traps),
        )
        return library

    # -- concrete loaders --------------------------------------------------
    def _load_category(
        self,
        category: str,
        factory: Callable[[str, Mapping[str, object]], T],
        registry: R,
    ) -> R:
        for source in self._iter_entries(category):
            try:
                registry.register(source.key, factory(source.key, source.row))
            except (SchemaError, KeyError, TypeError, ValueError) as exc:
                raise ContentLoadError(f"Invalid {category} entry '{source.key}': {exc}", path=source.path) from exc
        return registry

    def _validate_monsters(
        self,
        monsters: MonsterRegistry,
        abilities: BaseRegistry[EnemyAbility],
        behaviors: BaseRegistry[BehaviorProfile],
        items: ItemRegistry,
    ) -> None:
        for monster in monsters:
            source = self.base_path / "monsters"
            if monster.behavior not in behaviors:
                raise ContentLoadError(
                    f"Unknown behavior '{monster.behavior}' referenced by monster '{monster.key}'",
                    path=source,
                )
            for ability in monster.abilities:
                if ability not in abilities:
                    raise ContentLoadError(
                        f"Unknown ability '{ability}' referenced by monster '{monster.key}'",
                        path=source,
                    )
            for entry in monster.loot:
                if entry.item not in items:
                    raise ContentLoadError(
                        f"Unknown item '{entry.item}' in loot of monster '{monster.key}'",
                        path=source,
                    )

    # -- reading -----------------------------------------------------------
    def _iter_entries(self, category: str) -> Iterator[_Entry]:
        """Yield every table row under ``<base>/<category>/*.yaml`` in file order."""

        directory = self.base_path / category
        if not directory.is_dir():
            log.debug("No %s content under %s", category, self.base_path)
            return
        for file_path in sorted(directory.glob("*.y*ml")):
            rows = self._read_rows(file_path, category)
            for index, row in enumerate(rows):
                key = row.get("key")
                if not isinstance(key, str) or not key.strip():
                    key = f"{file_path.stem}-{index}"
                yield _Entry(file_path, key.strip(), row)

    def _read_rows(self, file_path: Path, category: str) -> List[Dict[str, object]]:
        try:
            document = yaml.safe_load(file_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ContentLoadError("Unable to read content file", path=file_path) from exc
        except yaml.YAMLError as exc:
            raise ContentLoadError("Failed to parse YAML content", path=file_path) from exc
        if document is None:
            return []
        if isinstance(document, Mapping):
            document = [document]
        if not isinstance(document, list) or not all(isinstance(row, Mapping) for row in document):
            raise ContentLoadError(f"{category.title()} content must be a list of mappings", path=file_path)
        return [dict(row) for row in document]
