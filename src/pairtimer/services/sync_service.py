import json
import logging
from typing import Any, Callable, Optional

import redis
from pydantic import ValidationError

from pairtimer.exceptions import DocumentNotFoundError
from pairtimer.models.session_state import LocalTimerState, SharedSessionState
from pairtimer.services.notifier import Notifier, Severity
from pairtimer.services.redis_service import RedisService
from pairtimer.services.subscription import ChannelSubscription

logger = logging.getLogger(__name__)

DocumentHandler = Callable[[str, SharedSessionState, bool], None]


class SessionSubscription(ChannelSubscription):

    def __init__(self, pubsub, pairing_key: str, on_document: DocumentHandler,
                 listen_interval: float = 1.0) -> None:
        super().__init__(pubsub, name=f"session:{pairing_key}", listen_interval=listen_interval)
        self.pairing_key = pairing_key
        self._on_document = on_document

    def _handle(self, data: str) -> None:
        try:
            document = SharedSessionState.from_redis(json.loads(data))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Skipping malformed session document for {self.pairing_key}: {e}")
            return
        self._on_document(self.pairing_key, document, False)


class SharedStateSynchronizer:
    """Writes local intent to the shared document and listens for changes.

    ``snapshot`` returns the current local state; it is only consulted when
    the document has to be rebuilt from scratch.
    """

    def __init__(
        self,
        redis_service: RedisService,
        self_id: str,
        pairing_key: str,
        snapshot: Callable[[], LocalTimerState],
        notifier: Notifier,
        listen_interval: float = 1.0,
    ) -> None:
        self.redis_service = redis_service
        self.self_id = self_id
        self.pairing_key = pairing_key
        self._snapshot = snapshot
        self.notifier = notifier
        self.listen_interval = listen_interval

    def push(self, **fields: Any) -> bool:
        try:
            self.redis_service.patch_session(self.pairing_key, fields, writer=self.self_id)
            return True
        except DocumentNotFoundError:
            logger.warning(
                f"Shared document {self.pairing_key} not found on update, re-initializing")
            return self._reinitialize(fields)
        except redis.RedisError as e:
            if self._confirmed_missing():
                logger.warning(
                    f"Shared document {self.pairing_key} missing after failed update ({e}), re-initializing")
                return self._reinitialize(fields)
            logger.error(f"Error updating shared state for {self.pairing_key}: {e}")
            self.notifier.notify(
                "Sync Error", "Our actions couldn't be synced.", Severity.DESTRUCTIVE)
            return False

    def _confirmed_missing(self) -> bool:
        try:
            return not self.redis_service.session_exists(self.pairing_key)
        except redis.RedisError:
            return False

    def _reinitialize(self, fields: dict) -> bool:
        document = SharedSessionState(
            **{**self._snapshot().to_shared_fields(), **fields},
            lastWriter=self.self_id,
        )
        try:
            self.redis_service.create_session(self.pairing_key, document, replace=True)
            return True
        except redis.RedisError as e:
            logger.error(f"Error re-initializing shared state for {self.pairing_key}: {e}")
            self.notifier.notify(
                "Sync Error", "Failed to re-sync our session.", Severity.DESTRUCTIVE)
            return False

    def initialize(self) -> Optional[SharedSessionState]:
        local = self._snapshot()
        document = SharedSessionState.initial(
            writer=self.self_id,
            focus_minutes=local.focus_duration_minutes,
            break_minutes=local.break_duration_minutes,
        )
        created = self.redis_service.create_session(self.pairing_key, document)
        if created is not None:
            logger.info(f"Created shared session {self.pairing_key}")
            return created
        return self.redis_service.get_session(self.pairing_key)

    def subscribe(self, on_document: DocumentHandler, background: bool = True) -> SessionSubscription:
        pubsub = self.redis_service.open_session_channel(self.pairing_key)
        subscription = SessionSubscription(
            pubsub, self.pairing_key, on_document, listen_interval=self.listen_interval)

        try:
            document = self.redis_service.get_session(self.pairing_key)
            if document is None:
                document = self.initialize()
        except (redis.RedisError, ValidationError) as e:
            logger.error(f"Error creating shared state for {self.pairing_key}: {e}")
            self.notifier.notify(
                "Sync Error", "Could not initialize our shared session.", Severity.DESTRUCTIVE)
            document = None

        if document is not None:
            on_document(self.pairing_key, document, True)

        if background:
            subscription.start()
        return subscription
