from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING

from pairtimer.exceptions import SettingsError
from pairtimer.models.session_state import LocalTimerState, RunState
from pairtimer.services.notifier import Notifier
from pairtimer.utils.preferences import PreferenceStore

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .sync_service import SharedStateSynchronizer

logger = logging.getLogger(__name__)


def _positive_minutes(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise SettingsError(f"{name} must be a whole number of minutes")
    if isinstance(value, str):
        value = value.strip()
    try:
        minutes = int(value)
    except (TypeError, ValueError, OverflowError):
        raise SettingsError(f"{name} must be a whole number of minutes") from None
    if isinstance(value, float) and value != minutes:
        raise SettingsError(f"{name} must be a whole number of minutes")
    if minutes < 1:
        raise SettingsError(f"{name} must be at least 1 minute")
    return minutes


@dataclass(frozen=True)
class TimerSettings:
    focus_duration_minutes: int
    break_duration_minutes: int

    @classmethod
    def from_values(cls, focus: Any, brk: Any) -> "TimerSettings":
        return cls(
            focus_duration_minutes=_positive_minutes("Focus duration", focus),
            break_duration_minutes=_positive_minutes("Break duration", brk),
        )


class SettingsPropagator:
    """Applies duration preferences locally and, when paired, to the partner."""

    def __init__(self, preferences: PreferenceStore, notifier: Notifier) -> None:
        self.preferences = preferences
        self.notifier = notifier

    def apply(
        self,
        state: LocalTimerState,
        settings: TimerSettings,
        synchronizer: Optional["SharedStateSynchronizer"] = None,
    ) -> bool:
        state.focus_duration_minutes = settings.focus_duration_minutes
        state.break_duration_minutes = settings.break_duration_minutes
        self.preferences.save_durations(
            settings.focus_duration_minutes, settings.break_duration_minutes)

        if state.run_state in (RunState.STOPPED, RunState.PAUSED):
            state.remaining_seconds = state.duration_for(state.active_mode)
            state.segment_start_budget = state.remaining_seconds

        logger.info(
            f"Durations set to {settings.focus_duration_minutes}/{settings.break_duration_minutes} min")

        if synchronizer is None:
            self.notifier.notify(
                "Local Settings Updated!", "Connect with your partner to sync them.")
            return True

        synced = synchronizer.push(
            focusDurationMinutes=settings.focus_duration_minutes,
            breakDurationMinutes=settings.break_duration_minutes,
            remainingSeconds=state.remaining_seconds,
        )
        if synced:
            self.notifier.notify(
                "Our Settings Synced!", "Durations are updated for both of us.")
        return synced
