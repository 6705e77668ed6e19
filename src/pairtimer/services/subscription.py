import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

import redis

logger = logging.getLogger(__name__)


class ChannelSubscription(ABC):
    """Live Redis channel listener.

    Messages are handled either by a background thread (``start``) or by
    calling ``poll`` directly, which drains whatever is pending.
    """

    def __init__(self, pubsub, name: str, listen_interval: float = 1.0) -> None:
        self._pubsub = pubsub
        self.name = name
        self.listen_interval = listen_interval
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def poll(self, timeout: float = 0.0) -> int:
        handled = 0
        with self._lock:
            if self._closed:
                return 0
            while True:
                message = self._pubsub.get_message(timeout=timeout)
                if message is None:
                    break
                timeout = 0.0
                if message.get("type") != "message":
                    continue
                try:
                    self._handle(message["data"])
                except Exception as e:
                    logger.error(f"Error handling message on {self.name}: {e}")
                handled += 1
        return handled

    def start(self) -> None:
        with self._lock:
            if self._thread is not None or self._closed:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._listen_loop, name=f"listen-{self.name}", daemon=True)
            self._thread.start()

    def _listen_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.poll(timeout=self.listen_interval)
            except redis.ConnectionError as e:
                logger.error(f"Lost connection on {self.name}: {e}")
                self._stop_event.wait(self.listen_interval)
            except redis.RedisError as e:
                logger.error(f"Listener error on {self.name}: {e}")
                self._stop_event.wait(self.listen_interval)

    def close(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.listen_interval + 1.0)
        self._thread = None

        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._pubsub.close()
            except redis.RedisError as e:
                logger.warning(f"Error closing {self.name}: {e}")

    @abstractmethod
    def _handle(self, data: str) -> None:
        pass

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
