import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from pairtimer.models.session_state import LocalTimerState, RunState, TimerMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentComplete:
    mode: TimerMode
    start_budget: int
    next_mode: TimerMode
    next_remaining: int


class CountdownEngine:
    """Second-granularity countdown over a ``LocalTimerState``."""

    @staticmethod
    def tick(state: LocalTimerState) -> Optional[SegmentComplete]:
        if state.run_state is not RunState.RUNNING:
            return None

        if state.remaining_seconds > 0:
            state.remaining_seconds -= 1
        if state.remaining_seconds > 0:
            return None

        finished_mode = state.active_mode
        start_budget = state.segment_start_budget
        state.reset_segment(finished_mode.opposite())
        return SegmentComplete(
            mode=finished_mode,
            start_budget=start_budget,
            next_mode=state.active_mode,
            next_remaining=state.remaining_seconds,
        )


class CountdownService:
    """Calls ``on_tick`` once per interval from a daemon thread."""

    def __init__(
        self,
        on_tick: Callable[[], None],
        interval: float = 1.0,
        auto_start: bool = False,
    ) -> None:
        self._on_tick = on_tick
        self.interval = interval
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._is_running = False

        if auto_start:
            self.start()

    @property
    def is_running(self) -> bool:
        return self._is_running

    def start(self) -> None:
        with self._lock:
            if self._is_running:
                return

            self._stop_event.clear()
            self._is_running = True
            self._thread = threading.Thread(
                target=self._tick_loop, name="countdown", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        with self._lock:
            if not self._is_running:
                return

            self._is_running = False
            self._stop_event.set()

        if self._thread is not None:
            self._thread.join(timeout=self.interval + 1.0)
            self._thread = None

    def _tick_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self._on_tick()
            except Exception as e:
                logger.error(f"Error in countdown tick: {e}")

    def __enter__(self) -> "CountdownService":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
