import logging
import threading
from typing import Callable, List, Optional

import redis
from pydantic import ValidationError

from pairtimer.models.segment_log import SegmentLogRecord, rounded_minutes
from pairtimer.models.session_state import TimerMode
from pairtimer.services.notifier import Notifier, Severity
from pairtimer.services.redis_service import RedisService
from pairtimer.services.subscription import ChannelSubscription

logger = logging.getLogger(__name__)


class SessionLogRecorder:
    """Best-effort append of finished segments to the shared journal."""

    def __init__(self, redis_service: RedisService, notifier: Notifier) -> None:
        self.redis_service = redis_service
        self.notifier = notifier

    def record(
        self,
        segment_kind: TimerMode,
        elapsed_seconds: int,
        pairing_key: Optional[str],
    ) -> Optional[SegmentLogRecord]:
        if elapsed_seconds <= 0 or not pairing_key:
            logger.debug(f"Not logging {segment_kind.value}: elapsed={elapsed_seconds}, key={pairing_key}")
            return None

        minutes = rounded_minutes(elapsed_seconds)
        if minutes == 0:
            logger.debug(f"Not logging {segment_kind.value}: {elapsed_seconds}s rounds to 0 minutes")
            return None

        try:
            record = self.redis_service.append_segment(pairing_key, segment_kind, minutes)
        except redis.RedisError as e:
            logger.error(f"Error adding segment log for {pairing_key}: {e}")
            self.notifier.notify(
                "Log Error", "Could not save your session to our journal.", Severity.DESTRUCTIVE)
            return None

        logger.info(f"Logged {minutes} min of {segment_kind.value} for {pairing_key}")
        return record


class LogSubscription(ChannelSubscription):

    def __init__(self, pubsub, pairing_key: str, on_append: Callable[[str], None],
                 listen_interval: float = 1.0) -> None:
        super().__init__(pubsub, name=f"logs:{pairing_key}", listen_interval=listen_interval)
        self.pairing_key = pairing_key
        self._on_append = on_append

    def _handle(self, data: str) -> None:
        self._on_append(self.pairing_key)


class LogFeed:
    """Live, newest-first view of a pairing key's segment log."""

    def __init__(
        self,
        redis_service: RedisService,
        notifier: Notifier,
        on_entries: Optional[Callable[[List[SegmentLogRecord]], None]] = None,
        background: bool = True,
        listen_interval: float = 1.0,
    ) -> None:
        self.redis_service = redis_service
        self.notifier = notifier
        self._on_entries = on_entries
        self.background = background
        self.listen_interval = listen_interval
        self._lock = threading.RLock()
        self._subscription: Optional[LogSubscription] = None
        self._pairing_key: Optional[str] = None
        self._entries: List[SegmentLogRecord] = []

    @property
    def pairing_key(self) -> Optional[str]:
        return self._pairing_key

    @property
    def entries(self) -> List[SegmentLogRecord]:
        with self._lock:
            return list(self._entries)

    def watch(self, pairing_key: Optional[str]) -> None:
        with self._lock:
            if pairing_key == self._pairing_key and (pairing_key is None or self._subscription):
                return
            stale = self._subscription
            self._subscription = None
            self._pairing_key = pairing_key

        if stale is not None:
            stale.close()

        if pairing_key is None:
            self._publish(None, [])
            return

        try:
            pubsub = self.redis_service.open_log_channel(pairing_key)
        except redis.RedisError as e:
            logger.error(f"Error subscribing to logs for {pairing_key}: {e}")
            self.notifier.notify(
                "Error", "Could not fetch our focus journal.", Severity.DESTRUCTIVE)
            self._publish(pairing_key, [])
            return

        subscription = LogSubscription(
            pubsub, pairing_key, self.refresh, listen_interval=self.listen_interval)
        with self._lock:
            if self._pairing_key != pairing_key:
                subscription.close()
                return
            self._subscription = subscription

        self.refresh(pairing_key)
        if self.background:
            subscription.start()

    def refresh(self, pairing_key: Optional[str] = None) -> List[SegmentLogRecord]:
        key = pairing_key or self._pairing_key
        if key is None:
            return []
        try:
            records = self.redis_service.list_segments(key)
        except (redis.RedisError, ValidationError) as e:
            logger.error(f"Error fetching logs for {key}: {e}")
            self.notifier.notify(
                "Error", "Could not fetch our focus journal.", Severity.DESTRUCTIVE)
            return self.entries
        self._publish(key, records)
        return records

    def poll(self, timeout: float = 0.0) -> int:
        subscription = self._subscription
        if subscription is None:
            return 0
        return subscription.poll(timeout=timeout)

    def _publish(self, pairing_key: Optional[str], records: List[SegmentLogRecord]) -> None:
        with self._lock:
            if pairing_key != self._pairing_key:
                return
            self._entries = list(records)
        if self._on_entries:
            self._on_entries(list(records))

    def close(self) -> None:
        self.watch(None)
