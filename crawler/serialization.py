"""Typed readers for the nested sections of saved payloads.

Every reader raises :class:`ValueError` when a value has the wrong shape so
that callers restoring a save only need to handle one family of errors.
"""

from __future__ import annotations

from typing import Callable, List, Mapping, Optional, TypeVar

__all__ = ["as_float", "as_int", "mapping_field", "optional_int", "records", "strings"]

T = TypeVar("T")


def as_int(value: object, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"'{name}' must be a number, not {type(value).__name__}")
    return int(value)


def as_float(value: object, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"'{name}' must be a number, not {type(value).__name__}")
    return float(value)


def optional_int(data: Mapping[str, object], name: str) -> Optional[int]:
    value = data.get(name)
    return as_int(value, name) if value is not None else None


def mapping_field(data: Mapping[str, object], name: str, *, required: bool = False) -> Mapping[str, object]:
    """Return ``data[name]`` as a mapping; a missing optional section is empty."""

    value = data[name] if required else data.get(name)
    if value is None and not required:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"'{name}' must be a mapping, not {type(value).__name__}")
    return value


def _sequence(data: Mapping[str, object], name: str) -> List[object]:
    value = data.get(name)
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"'{name}' must be a list, not {type(value).__name__}")
    return list(value)


def records(
    data: Mapping[str, object],
    name: str,
    factory: Callable[[Mapping[str, object]], T],
) -> List[T]:
    """Rebuild a list of nested records, each of which must be a mapping."""

    result: List[T] = []
    for entry in _sequence(data, name):
        if not isinstance(entry, Mapping):
            raise ValueError(f"Entries of '{name}' must be mappings, not {type(entry).__name__}")
        result.append(factory(entry))
    return result


def strings(data: Mapping[str, object], name: str) -> List[str]:
    return [str(value) for value in _sequence(data, name)]
