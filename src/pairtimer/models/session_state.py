from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping

from pydantic import BaseModel, Field

DEFAULT_FOCUS_MINUTES = 25
DEFAULT_BREAK_MINUTES = 5

SESSION_FIELDS = (
    "remainingSeconds",
    "runState",
    "activeMode",
    "focusDurationMinutes",
    "breakDurationMinutes",
)


class RunState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


class TimerMode(str, Enum):
    FOCUS = "focus"
    BREAK = "break"

    def opposite(self) -> "TimerMode":
        return TimerMode.BREAK if self is TimerMode.FOCUS else TimerMode.FOCUS

    @property
    def label(self) -> str:
        return "Focus Time" if self is TimerMode.FOCUS else "Break Time"


class SharedSessionState(BaseModel):
    """Authoritative timer document shared by both partners."""

    remainingSeconds: int = Field(ge=0)
    runState: RunState
    activeMode: TimerMode
    focusDurationMinutes: int = Field(ge=1)
    breakDurationMinutes: int = Field(ge=1)
    lastWriter: str
    writeTimestamp: int = 0

    @classmethod
    def initial(cls, writer: str, focus_minutes: int, break_minutes: int) -> "SharedSessionState":
        return cls(
            remainingSeconds=focus_minutes * 60,
            runState=RunState.STOPPED,
            activeMode=TimerMode.FOCUS,
            focusDurationMinutes=focus_minutes,
            breakDurationMinutes=break_minutes,
            lastWriter=writer,
        )

    @classmethod
    def from_redis(cls, data: Mapping[str, Any]) -> "SharedSessionState":
        return cls.model_validate(dict(data))

    def to_redis(self) -> Dict[str, str]:
        return {key: str(value) for key, value in self.model_dump(mode="json").items()}


def encode_fields(fields: Mapping[str, Any]) -> Dict[str, str]:
    """Hash-encode a partial document update."""
    encoded: Dict[str, str] = {}
    for key, value in fields.items():
        if key not in SESSION_FIELDS:
            raise KeyError(f"Unknown session field: {key}")
        encoded[key] = value.value if isinstance(value, Enum) else str(int(value))
    return encoded


@dataclass
class LocalTimerState:
    """Per-device mirror of the shared document.

    ``segment_start_budget`` never leaves the device; it holds the number of
    seconds the current segment started from and is only used to work out
    how long the segment ran when it gets logged.
    """

    remaining_seconds: int
    run_state: RunState = RunState.STOPPED
    active_mode: TimerMode = TimerMode.FOCUS
    focus_duration_minutes: int = DEFAULT_FOCUS_MINUTES
    break_duration_minutes: int = DEFAULT_BREAK_MINUTES
    segment_start_budget: int = 0

    @classmethod
    def fresh(
        cls,
        focus_minutes: int = DEFAULT_FOCUS_MINUTES,
        break_minutes: int = DEFAULT_BREAK_MINUTES,
    ) -> "LocalTimerState":
        return cls(
            remaining_seconds=focus_minutes * 60,
            focus_duration_minutes=focus_minutes,
            break_duration_minutes=break_minutes,
            segment_start_budget=focus_minutes * 60,
        )

    def duration_for(self, mode: TimerMode) -> int:
        minutes = self.focus_duration_minutes if mode is TimerMode.FOCUS else self.break_duration_minutes
        return minutes * 60

    @property
    def elapsed_seconds(self) -> int:
        return max(0, self.segment_start_budget - self.remaining_seconds)

    def reset_segment(self, mode: TimerMode) -> None:
        self.active_mode = mode
        self.run_state = RunState.STOPPED
        self.remaining_seconds = self.duration_for(mode)
        self.segment_start_budget = self.remaining_seconds

    def copy(self) -> "LocalTimerState":
        return replace(self)

    def to_shared_fields(self) -> Dict[str, Any]:
        return {
            "remainingSeconds": self.remaining_seconds,
            "runState": self.run_state,
            "activeMode": self.active_mode,
            "focusDurationMinutes": self.focus_duration_minutes,
            "breakDurationMinutes": self.break_duration_minutes,
        }
