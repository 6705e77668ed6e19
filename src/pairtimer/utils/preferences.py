import json
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Tuple

from pairtimer.models.session_state import DEFAULT_BREAK_MINUTES, DEFAULT_FOCUS_MINUTES

logger = logging.getLogger(__name__)

USER_ID = "userId"
PARTNER_ID = "partnerId"
FOCUS_DURATION = "focusDuration"
BREAK_DURATION = "breakDuration"


class PreferenceStore:
    """Device-local key -> string store kept in a single JSON file."""

    def __init__(self, base_dir: Optional[Path] = None):
        if base_dir is None:
            base_dir = Path.home() / ".pairtimer"
        self.base_dir = base_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.base_dir / "preferences.json"
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): str(value) for key, value in data.items()}

    def _write(self, data: Dict[str, str]) -> None:
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self.path)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove(self, *keys: str) -> None:
        with self._lock:
            data = self._read()
            if any(key in data for key in keys):
                for key in keys:
                    data.pop(key, None)
                self._write(data)

    def _minutes(self, key: str, default: int) -> int:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            value = int(raw)
        except ValueError:
            logger.warning(f"Invalid {key} preference {raw!r}, using {default}")
            return default
        return value if value >= 1 else default

    def load_durations(self) -> Tuple[int, int]:
        return (
            self._minutes(FOCUS_DURATION, DEFAULT_FOCUS_MINUTES),
            self._minutes(BREAK_DURATION, DEFAULT_BREAK_MINUTES),
        )

    def save_durations(self, focus_minutes: int, break_minutes: int) -> None:
        with self._lock:
            data = self._read()
            data[FOCUS_DURATION] = str(focus_minutes)
            data[BREAK_DURATION] = str(break_minutes)
            self._write(data)
