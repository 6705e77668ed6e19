"""
Redis Management for PairTimer.

Handles all Redis operations for shared session documents and segment logs.
"""

import json
import logging
from typing import Dict, List, Optional

import redis
from ulid import ULID

from pairtimer.exceptions import DocumentNotFoundError

logger = logging.getLogger(__name__)


class RedisManager:
    """
    Manages all Redis operations for PairTimer.

    Data Structure:
    - session:<pairingKey> -> Shared session document (hash)
    - session:<pairingKey>:updates -> Full document JSON after every write (channel)
    - session:<pairingKey>:logs -> Segment log ids scored by recordedAt (sorted set)
    - session:<pairingKey>:logs:updates -> Id of every appended log record (channel)
    - log:<logId> -> Segment log record (hash)
    """

    def __init__(self, host: str = 'localhost', port: int = 6379, db: int = 0,
                 password: Optional[str] = None,
                 client: Optional[redis.Redis] = None):
        self.client = client or redis.Redis(
            host=host,
            port=port,
            db=db,
            password=password,
            decode_responses=True
        )
        self._test_connection()

    def _test_connection(self):
        try:
            self.client.ping()
        except redis.ConnectionError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    # ==================== KEYS ====================

    @staticmethod
    def session_key(pairing_key: str) -> str:
        return f"session:{pairing_key}"

    @staticmethod
    def session_channel(pairing_key: str) -> str:
        return f"session:{pairing_key}:updates"

    @staticmethod
    def log_index_key(pairing_key: str) -> str:
        return f"session:{pairing_key}:logs"

    @staticmethod
    def log_channel(pairing_key: str) -> str:
        return f"session:{pairing_key}:logs:updates"

    @staticmethod
    def log_key(log_id: str) -> str:
        return f"log:{log_id}"

    def server_time_ms(self, client=None) -> int:
        seconds, microseconds = (client or self.client).time()
        return int(seconds) * 1000 + int(microseconds) // 1000

    # ==================== SESSION OPERATIONS ====================

    def _next_timestamp(self, pipe, current: Dict[str, str]) -> int:
        now = self.server_time_ms(pipe)
        previous = int(current.get("writeTimestamp") or 0)
        return max(now, previous + 1)

    def create_session(self, pairing_key: str, fields: Dict[str, str],
                       replace: bool = False) -> Optional[Dict[str, str]]:
        """
        Create the shared document for a pairing key.

        Args:
            pairing_key: Session the document belongs to
            fields: Complete, hash-encoded document
            replace: Overwrite an existing document instead of backing off

        Returns:
            The stored document, or None when one already existed and
            replace was not requested
        """
        key = self.session_key(pairing_key)
        channel = self.session_channel(pairing_key)

        def _create(pipe) -> Optional[Dict[str, str]]:
            current = pipe.hgetall(key)
            if current and not replace:
                return None

            document = dict(fields)
            document["writeTimestamp"] = str(self._next_timestamp(pipe, current))

            pipe.multi()
            pipe.delete(key)
            pipe.hset(key, mapping=document)
            pipe.publish(channel, json.dumps(document))
            return document

        return self.client.transaction(_create, key, value_from_callable=True)

    def patch_session(self, pairing_key: str, fields: Dict[str, str]) -> Dict[str, str]:
        """
        Merge fields into an existing shared document.

        Raises:
            DocumentNotFoundError: the document does not exist
        """
        key = self.session_key(pairing_key)
        channel = self.session_channel(pairing_key)

        def _patch(pipe) -> Dict[str, str]:
            current = pipe.hgetall(key)
            if not current:
                raise DocumentNotFoundError(pairing_key)

            update = dict(fields)
            update["writeTimestamp"] = str(self._next_timestamp(pipe, current))
            merged = {**current, **update}

            pipe.multi()
            pipe.hset(key, mapping=update)
            pipe.publish(channel, json.dumps(merged))
            return merged

        return self.client.transaction(_patch, key, value_from_callable=True)

    def get_session(self, pairing_key: str) -> Optional[Dict[str, str]]:
        data = self.client.hgetall(self.session_key(pairing_key))
        if not data:
            return None
        return data

    def session_exists(self, pairing_key: str) -> bool:
        return bool(self.client.exists(self.session_key(pairing_key)))

    # ==================== SEGMENT LOG OPERATIONS ====================

    def append_log(self, pairing_key: str, segment_kind: str,
                   duration_minutes: int, log_id: Optional[str] = None) -> Dict[str, str]:
        if log_id is None:
            log_id = f"l_{ULID()}"

        recorded_at = self.server_time_ms()
        log_data = {
            "id": log_id,
            "pairingKey": pairing_key,
            "recordedAt": str(recorded_at),
            "segmentKind": segment_kind,
            "durationMinutes": str(duration_minutes),
        }

        pipe = self.client.pipeline(transaction=True)
        pipe.hset(self.log_key(log_id), mapping=log_data)
        pipe.zadd(self.log_index_key(pairing_key), {log_id: recorded_at})
        pipe.publish(self.log_channel(pairing_key), log_id)
        pipe.execute()
        return log_data

    def get_log(self, log_id: str) -> Optional[Dict[str, str]]:
        data = self.client.hgetall(self.log_key(log_id))
        if not data:
            return None
        return data

    def get_logs(self, pairing_key: str) -> List[Dict[str, str]]:
        log_ids = self.client.zrevrange(self.log_index_key(pairing_key), 0, -1)

        logs = []
        for log_id in log_ids:
            record = self.get_log(log_id)
            if record:
                logs.append(record)
        return logs

    # ==================== PUB/SUB ====================

    def subscribe(self, *channels: str):
        pubsub = self.client.pubsub()
        pubsub.subscribe(*channels)
        return pubsub

    def close(self):
        self.client.close()
