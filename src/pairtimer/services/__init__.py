"""Service layer for PairTimer."""

from .countdown_service import CountdownEngine, CountdownService
from .log_service import LogFeed, SessionLogRecorder
from .notifier import ConsoleNotifier, LoggingNotifier, Notifier, Severity
from .redis_service import RedisConfig, RedisService
from .settings_service import SettingsPropagator, TimerSettings
from .sync_service import SharedStateSynchronizer
from .timer_controller import PairTimerController

__all__ = [
    "ConsoleNotifier",
    "CountdownEngine",
    "CountdownService",
    "LogFeed",
    "LoggingNotifier",
    "Notifier",
    "PairTimerController",
    "RedisConfig",
    "RedisService",
    "SessionLogRecorder",
    "SettingsPropagator",
    "Severity",
    "SharedStateSynchronizer",
    "TimerSettings",
]
