from pairtimer.models.segment_log import SegmentLogRecord, rounded_minutes
from pairtimer.models.session_state import (
    DEFAULT_BREAK_MINUTES,
    DEFAULT_FOCUS_MINUTES,
    LocalTimerState,
    RunState,
    SharedSessionState,
    TimerMode,
)

__all__ = [
    'DEFAULT_BREAK_MINUTES',
    'DEFAULT_FOCUS_MINUTES',
    'LocalTimerState',
    'RunState',
    'SegmentLogRecord',
    'SharedSessionState',
    'TimerMode',
    'rounded_minutes',
]
