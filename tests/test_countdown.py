import threading

from pairtimer.models.session_state import LocalTimerState, RunState, TimerMode
from pairtimer.services.countdown_service import CountdownEngine, CountdownService


def running_state(remaining: int, mode: TimerMode = TimerMode.FOCUS) -> LocalTimerState:
    state = LocalTimerState.fresh(25, 5)
    state.active_mode = mode
    state.run_state = RunState.RUNNING
    state.remaining_seconds = remaining
    state.segment_start_budget = state.duration_for(mode)
    return state


def test_tick_decrements_by_one_while_running():
    state = running_state(5)
    seen = []
    for _ in range(4):
        assert CountdownEngine.tick(state) is None
        seen.append(state.remaining_seconds)

    assert seen == [4, 3, 2, 1]


def test_tick_does_nothing_unless_running():
    state = LocalTimerState.fresh(25, 5)
    assert CountdownEngine.tick(state) is None
    assert state.remaining_seconds == 1500

    state.run_state = RunState.PAUSED
    state.remaining_seconds = 30
    assert CountdownEngine.tick(state) is None
    assert state.remaining_seconds == 30


def test_zero_crossing_switches_to_break_and_stops():
    state = running_state(1)

    completion = CountdownEngine.tick(state)

    assert completion is not None
    assert completion.mode is TimerMode.FOCUS
    assert completion.start_budget == 1500
    assert completion.next_mode is TimerMode.BREAK
    assert state.active_mode is TimerMode.BREAK
    assert state.remaining_seconds == 5 * 60
    assert state.run_state is RunState.STOPPED
    assert state.segment_start_budget == 5 * 60


def test_break_completion_returns_to_focus():
    state = running_state(1, TimerMode.BREAK)

    completion = CountdownEngine.tick(state)

    assert completion.mode is TimerMode.BREAK
    assert state.active_mode is TimerMode.FOCUS
    assert state.remaining_seconds == 1500


def test_running_at_zero_completes_on_next_tick():
    state = running_state(0)

    completion = CountdownEngine.tick(state)

    assert completion is not None
    assert state.remaining_seconds == 300
    assert state.remaining_seconds >= 0


def test_countdown_service_keeps_ticking_after_callback_error():
    calls = []
    done = threading.Event()

    def on_tick():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        done.set()

    with CountdownService(on_tick, interval=0.01) as service:
        assert service.is_running
        assert done.wait(timeout=2.0)

    assert not service.is_running
    assert len(calls) >= 2
