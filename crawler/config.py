"""Runtime settings read from the environment and an optional ``.env`` file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, TypeVar

from dotenv import load_dotenv

__all__ = ["Settings", "load_settings"]

T = TypeVar("T", int, float)


@dataclass(frozen=True)
class Settings:
    save_dir: Path = Path("saves")
    seed: int | str | None = None
    room_budget: int = 15
    log_level: str = "INFO"
    narration_timeout: float = 2.0
    autosave_interval: int = 10
    content_path: Path | None = None


def _number(environ: Mapping[str, str], name: str, convert: Callable[[str], T], default: T) -> T:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = convert(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}.") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {raw!r}.")
    return value


def _seed(raw: str | None) -> int | str | None:
    if raw is None or not raw.strip():
        return None
    text = raw.strip()
    try:
        return int(text)
    except ValueError:
        return text


def load_settings(environ: Mapping[str, str] | None = None, *, dotenv: bool = True) -> Settings:
    """Build :class:`Settings` from ``CRAWLER_*`` variables.

    ``.env`` is loaded first unless ``dotenv`` is false; passing ``environ``
    reads from that mapping instead of :data:`os.environ`.
    """

    if dotenv:
        load_dotenv()
    env = os.environ if environ is None else environ
    content_path = env.get("CRAWLER_CONTENT_PATH", "").strip()
    return Settings(
        save_dir=Path(env.get("CRAWLER_SAVE_DIR", "").strip() or "saves"),
        seed=_seed(env.get("CRAWLER_SEED")),
        room_budget=_number(env, "CRAWLER_ROOM_BUDGET", int, 15),
        log_level=(env.get("CRAWLER_LOG_LEVEL", "").strip() or "INFO").upper(),
        narration_timeout=_number(env, "CRAWLER_NARRATION_TIMEOUT", float, 2.0),
        autosave_interval=_number(env, "CRAWLER_AUTOSAVE_INTERVAL", int, 10),
        content_path=Path(content_path) if content_path else None,
    )
