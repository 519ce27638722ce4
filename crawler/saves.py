"""Versioned save slots backed by a small key-value blob store."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

from .errors import PersistenceError, StateConsistencyError
from .serialization import as_float, as_int, mapping_field
from .state import GameState

__all__ = [
    "AUTO_SAVE_SLOT",
    "MAX_SAVE_SLOTS",
    "SAVE_VERSION",
    "AutoSaveService",
    "FileSaveStorage",
    "LoadOperation",
    "LoadResult",
    "MemorySaveStorage",
    "SaveData",
    "SaveMetadata",
    "SaveOperation",
    "SaveResult",
    "SaveStorage",
    "SaveSystem",
]

log = logging.getLogger(__name__)

SAVE_VERSION = "1.0.0"
MAX_SAVE_SLOTS = 5
AUTO_SAVE_SLOT = 0
SECONDS_PER_TURN = 30
KEY_PREFIX = "dungeon_crawler_save_"
DEFAULT_AUTOSAVE_INTERVAL = 10


class SaveResult:
    SUCCESS = "success"
    STORAGE_FULL = "storage_full"
    INVALID_DATA = "invalid_data"
    SLOT_LOCKED = "slot_locked"
    UNKNOWN = "unknown"


class LoadResult:
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    CORRUPTED = "corrupted"
    VERSION_MISMATCH = "version_mismatch"
    UNKNOWN = "unknown"


def slot_key(slot: int) -> str:
    return f"{KEY_PREFIX}{slot}"


def _valid_slot(slot: int) -> bool:
    return AUTO_SAVE_SLOT <= slot <= MAX_SAVE_SLOTS


# -- storage backends ---------------------------------------------------------
class SaveStorage:
    """Minimal asynchronous key-value store holding one JSON blob per key."""

    async def read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def write(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> bool:
        raise NotImplementedError

    async def keys(self) -> List[str]:
        raise NotImplementedError


class MemorySaveStorage(SaveStorage):
    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    async def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def write(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self) -> List[str]:
        return sorted(self._data)


class FileSaveStorage(SaveStorage):
    """Store each key as ``<directory>/<key>.json``."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    async def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise PersistenceError(f"{path} is not UTF-8 text", reason=LoadResult.CORRUPTED) from exc
        except OSError as exc:
            raise PersistenceError(f"Could not read {path}: {exc}", reason=LoadResult.UNKNOWN) from exc

    async def write(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            await asyncio.to_thread(self._directory.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_text, value, encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Could not write {path}: {exc}", reason=SaveResult.STORAGE_FULL) from exc

    async def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        try:
            await asyncio.to_thread(path.unlink)
        except OSError as exc:
            raise PersistenceError(f"Could not delete {path}: {exc}", reason=SaveResult.UNKNOWN) from exc
        return True

    async def keys(self) -> List[str]:
        if not self._directory.exists():
            return []
        paths = await asyncio.to_thread(lambda: sorted(self._directory.glob("*.json")))
        return [path.stem for path in paths]


# -- envelopes ----------------------------------------------------------------
@dataclass(frozen=True)
class SaveMetadata:
    character_name: str
    character_class: str
    level: int
    current_room: str
    play_time: int
    dungeon_seed: int
    last_saved: float
    save_slot: int
    name: str = ""

    def to_dict(self) -> Dict[str, object]:
        return {
            "character_name": self.character_name,
            "character_class": self.character_class,
            "level": self.level,
            "current_room": self.current_room,
            "play_time": self.play_time,
            "dungeon_seed": self.dungeon_seed,
            "last_saved": self.last_saved,
            "save_slot": self.save_slot,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "SaveMetadata":
        return cls(
            character_name=str(data["character_name"]),
            character_class=str(data["character_class"]),
            level=as_int(data["level"], "level"),
            current_room=str(data["current_room"]),
            play_time=as_int(data.get("play_time", 0), "play_time"),
            dungeon_seed=as_int(data.get("dungeon_seed", 0), "dungeon_seed"),
            last_saved=as_float(data["last_saved"], "last_saved"),
            save_slot=as_int(data["save_slot"], "save_slot"),
            name=str(data.get("name", "")),
        )


@dataclass(frozen=True)
class SaveData:
    id: str
    version: str
    metadata: SaveMetadata
    game_state: Mapping[str, object]
    timestamp: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "version": self.version,
            "metadata": self.metadata.to_dict(),
            "game_state": dict(self.game_state),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "SaveData":
        game_state = mapping_field(data, "game_state", required=True)
        return cls(
            id=str(data["id"]),
            version=str(data["version"]),
            metadata=SaveMetadata.from_dict(mapping_field(data, "metadata", required=True)),
            game_state=game_state,
            timestamp=as_float(data["timestamp"], "timestamp"),
        )


@dataclass
class SaveOperation:
    result: str
    message: str
    save_data: SaveData | None = None

    @property
    def ok(self) -> bool:
        return self.result == SaveResult.SUCCESS


@dataclass
class LoadOperation:
    result: str
    message: str
    state: GameState | None = None
    save_data: SaveData | None = None

    @property
    def ok(self) -> bool:
        return self.result == LoadResult.SUCCESS


_LOAD_MESSAGES: Mapping[str, str] = {
    LoadResult.CORRUPTED: "Save data is corrupted or invalid.",
    LoadResult.VERSION_MISMATCH: "Save data is from an incompatible version.",
    LoadResult.NOT_FOUND: "Save data not found.",
}


# -- save system --------------------------------------------------------------
class SaveSystem:
    """Serialise game states into numbered slots.

    Slots 1-5 are for the player; slot 0 only ever receives auto-saves. All
    storage access happens under one :class:`asyncio.Lock`, released on every
    path through ``async with``.
    """

    def __init__(self, storage: SaveStorage, *, clock: Callable[[], float] | None = None) -> None:
        self.storage = storage
        self.clock = clock or time.time
        self._lock = asyncio.Lock()

    def create_save_data(self, state: GameState, slot: int, name: str | None = None) -> SaveData:
        now = self.clock()
        metadata = SaveMetadata(
            character_name=state.character.name,
            character_class=state.character.class_key,
            level=state.character.level,
            current_room=state.current_room_id,
            play_time=state.turn_count * SECONDS_PER_TURN,
            dungeon_seed=state.dungeon.seed,
            last_saved=now,
            save_slot=slot,
            name=name or f"Save {slot}",
        )
        return SaveData(
            id=f"save-{slot}-{int(now * 1000)}",
            version=SAVE_VERSION,
            metadata=metadata,
            game_state=state.to_dict(),
            timestamp=now,
        )

    async def save(self, state: GameState, slot: int, name: str | None = None) -> SaveOperation:
        if slot == AUTO_SAVE_SLOT:
            return SaveOperation(SaveResult.SLOT_LOCKED, "Slot 0 is reserved for auto-saves.")
        return await self._save(state, slot, name)

    async def auto_save(self, state: GameState) -> SaveOperation:
        return await self._save(state, AUTO_SAVE_SLOT, "Auto Save")

    async def _save(self, state: GameState, slot: int, name: str | None) -> SaveOperation:
        if not _valid_slot(slot):
            return SaveOperation(
                SaveResult.INVALID_DATA,
                f"Invalid save slot: {slot}. Must be between 1 and {MAX_SAVE_SLOTS}.",
            )
        if state.combat is not None:
            log.warning("Saving slot %d while combat is in progress", slot)
        async with self._lock:
            try:
                save_data = self.create_save_data(state, slot, name)
                await self.storage.write(slot_key(slot), json.dumps(save_data.to_dict()))
            except PersistenceError as exc:
                log.warning("Save to slot %d failed: %s", slot, exc)
                return SaveOperation(exc.reason, f"Failed to save game: {exc}")
            except (TypeError, ValueError) as exc:
                log.exception("Could not serialise game state for slot %d", slot)
                return SaveOperation(SaveResult.UNKNOWN, f"Failed to save game: {exc}")
        log.info("Saved %s to slot %d", state.character.name, slot)
        return SaveOperation(SaveResult.SUCCESS, f"Game saved successfully to slot {slot}.", save_data)

    async def load(self, slot: int) -> LoadOperation:
        if not _valid_slot(slot):
            return LoadOperation(LoadResult.NOT_FOUND, f"Invalid save slot: {slot}.")
        async with self._lock:
            try:
                text = await self.storage.read(slot_key(slot))
            except PersistenceError as exc:
                return LoadOperation(exc.reason, f"Failed to load game: {exc}")
        if text is None:
            return LoadOperation(LoadResult.NOT_FOUND, f"No save data found in slot {slot}.")
        return self._decode(slot, text)

    def _decode(self, slot: int, text: str) -> LoadOperation:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError:
            log.warning("Slot %d does not contain valid JSON", slot)
            return LoadOperation(LoadResult.CORRUPTED, _LOAD_MESSAGES[LoadResult.CORRUPTED])
        if not isinstance(raw, dict):
            return LoadOperation(LoadResult.CORRUPTED, _LOAD_MESSAGES[LoadResult.CORRUPTED])
        if raw.get("version") != SAVE_VERSION:
            log.warning("Rejected slot %d with save version %r", slot, raw.get("version"))
            return LoadOperation(LoadResult.VERSION_MISMATCH, _LOAD_MESSAGES[LoadResult.VERSION_MISMATCH])
        try:
            save_data = SaveData.from_dict(raw)
            state = GameState.from_dict(save_data.game_state)
        except (AttributeError, KeyError, TypeError, ValueError, StateConsistencyError) as exc:
            log.warning("Slot %d could not be restored: %s", slot, exc)
            return LoadOperation(LoadResult.CORRUPTED, f"Failed to load game: {exc}")
        return LoadOperation(LoadResult.SUCCESS, f"Game loaded successfully from slot {slot}.", state, save_data)

    async def _read_envelope(self, slot: int) -> Optional[SaveData]:
        try:
            text = await self.storage.read(slot_key(slot))
        except PersistenceError as exc:
            log.warning("Skipping unreadable save in slot %d: %s", slot, exc)
            return None
        if text is None:
            return None
        try:
            return SaveData.from_dict(json.loads(text))
        except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as exc:
            log.warning("Skipping unreadable save in slot %d: %s", slot, exc)
            return None

    async def list_slots(self) -> List[SaveMetadata]:
        """Metadata of every occupied slot, auto-save first."""

        async with self._lock:
            envelopes = [await self._read_envelope(slot) for slot in range(AUTO_SAVE_SLOT, MAX_SAVE_SLOTS + 1)]
        return [envelope.metadata for envelope in envelopes if envelope is not None]

    async def delete_slot(self, slot: int) -> bool:
        if not _valid_slot(slot):
            return False
        async with self._lock:
            try:
                return await self.storage.delete(slot_key(slot))
            except PersistenceError as exc:
                log.warning("Could not delete slot %d: %s", slot, exc)
                return False

    async def has_auto_save(self) -> bool:
        async with self._lock:
            try:
                return await self.storage.read(slot_key(AUTO_SAVE_SLOT)) is not None
            except PersistenceError as exc:
                log.warning("Auto-save slot is unreadable: %s", exc)
                return True

    async def most_recent_save(self) -> Optional[SaveData]:
        async with self._lock:
            envelopes = [await self._read_envelope(slot) for slot in range(AUTO_SAVE_SLOT, MAX_SAVE_SLOTS + 1)]
        latest: Optional[SaveData] = None
        for envelope in envelopes:
            if envelope is not None and (latest is None or envelope.timestamp > latest.timestamp):
                latest = envelope
        return latest

    async def load_most_recent(self) -> LoadOperation:
        latest = await self.most_recent_save()
        if latest is None:
            return LoadOperation(LoadResult.NOT_FOUND, "No saves found to load.")
        return await self.load(latest.metadata.save_slot)

    async def clear_all_saves(self) -> bool:
        async with self._lock:
            try:
                for slot in range(AUTO_SAVE_SLOT, MAX_SAVE_SLOTS + 1):
                    await self.storage.delete(slot_key(slot))
            except PersistenceError as exc:
                log.warning("Could not clear saves: %s", exc)
                return False
        return True


class AutoSaveService:
    """Write slot 0 periodically and after notable events."""

    def __init__(self, save_system: SaveSystem, *, interval: int = DEFAULT_AUTOSAVE_INTERVAL) -> None:
        self.save_system = save_system
        self.interval = interval
        self.last_auto_save_turn = 0

    def should_auto_save(self, state: GameState) -> bool:
        return state.turn_count - self.last_auto_save_turn >= self.interval

    def reasons(self, previous: GameState, current: GameState) -> List[str]:
        reasons: List[str] = []
        if current.current_room_id != previous.current_room_id:
            reasons.append("room movement")
        if previous.combat is not None and current.combat is None:
            reasons.append("combat ended")
        if current.character.level > previous.character.level:
            reasons.append(f"level up to {current.character.level}")
        if self.should_auto_save(current):
            reasons.append(f"periodic save after {current.turn_count} turns")
        return reasons

    async def after_turn(self, previous: GameState, current: GameState) -> Optional[SaveOperation]:
        reasons = self.reasons(previous, current)
        if not reasons:
            return None
        operation = await self.save_system.auto_save(current)
        self.last_auto_save_turn = current.turn_count
        if operation.ok:
            log.info("Auto-save successful: %s", ", ".join(reasons))
        else:
            log.warning("Auto-save failed: %s", operation.message)
        return operation
