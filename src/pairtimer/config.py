from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_PREFS_DIR = Path.home() / ".pairtimer"


def load_env(env_path: Optional[Path] = None) -> None:
    path = env_path or Path.cwd() / ".env"
    if path.exists():
        load_dotenv(dotenv_path=path)


def to_bool(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_float(value: Optional[str], default: float) -> float:
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


@dataclass(frozen=True)
class AppConfig:
    preferences_dir: Path = field(default_factory=lambda: DEFAULT_PREFS_DIR)
    tick_interval: float = 1.0
    listen_interval: float = 1.0
    elect_completion_writer: bool = False

    @classmethod
    def from_env(cls, *, env_path: Optional[Path] = None) -> "AppConfig":
        load_env(env_path)

        prefs_raw = os.getenv("PAIRTIMER_PREFS_DIR")
        preferences_dir = Path(prefs_raw).expanduser() if prefs_raw else DEFAULT_PREFS_DIR

        return cls(
            preferences_dir=preferences_dir,
            tick_interval=_to_float(os.getenv("PAIRTIMER_TICK_INTERVAL"), 1.0),
            listen_interval=_to_float(os.getenv("PAIRTIMER_LISTEN_INTERVAL"), 1.0),
            elect_completion_writer=to_bool(
                os.getenv("PAIRTIMER_ELECT_COMPLETION_WRITER"), default=False),
        )
