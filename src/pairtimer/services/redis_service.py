from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional
from urllib.parse import urlparse

from pairtimer.config import load_env
from pairtimer.database.redis_manager import RedisManager
from pairtimer.models.segment_log import SegmentLogRecord
from pairtimer.models.session_state import SharedSessionState, TimerMode, encode_fields


@dataclass(frozen=True)
class RedisConfig:
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None

    @classmethod
    def from_env(cls, *, env_path: Optional[Path] = None) -> "RedisConfig":
        load_env(env_path)

        uri = os.getenv("REDIS_URI")
        if uri:
            return cls.from_uri(uri)

        host = os.getenv("REDIS_HOST", cls.host)
        port_raw = os.getenv("REDIS_PORT")
        db_raw = os.getenv("REDIS_DB")
        password = os.getenv("REDIS_PASSWORD") or None
        port = int(port_raw) if port_raw else cls.port
        db = int(db_raw) if db_raw else cls.db

        return cls(host=host, port=port, db=db, password=password)

    @classmethod
    def from_uri(cls, uri: str) -> "RedisConfig":
        parsed = urlparse(uri)
        if parsed.scheme not in {"redis", "rediss"}:
            raise ValueError(
                f"Unsupported Redis URI scheme: {parsed.scheme!r}")

        host = parsed.hostname or cls.host
        port = parsed.port or cls.port
        password = parsed.password or None
        db_fragment = parsed.path.lstrip("/")
        db = int(db_fragment) if db_fragment else cls.db

        return cls(host=host, port=port, db=db, password=password)

    def create_manager(self) -> RedisManager:
        return RedisManager(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
        )


class RedisService:
    """Typed access to shared session documents and segment logs."""

    def __init__(
        self,
        manager: Optional[RedisManager] = None,
        config: Optional[RedisConfig] = None,
    ) -> None:
        self.config = config or RedisConfig.from_env()
        self.manager = manager or self.config.create_manager()

    def get_session(self, pairing_key: str) -> Optional[SharedSessionState]:
        data = self.manager.get_session(pairing_key)
        if data is None:
            return None
        return SharedSessionState.from_redis(data)

    def session_exists(self, pairing_key: str) -> bool:
        return self.manager.session_exists(pairing_key)

    def create_session(
        self,
        pairing_key: str,
        document: SharedSessionState,
        *,
        replace: bool = False,
    ) -> Optional[SharedSessionState]:
        stored = self.manager.create_session(pairing_key, document.to_redis(), replace=replace)
        if stored is None:
            return None
        return SharedSessionState.from_redis(stored)

    def patch_session(
        self,
        pairing_key: str,
        fields: Mapping[str, Any],
        *,
        writer: str,
    ) -> SharedSessionState:
        update = encode_fields(fields)
        update["lastWriter"] = writer
        merged = self.manager.patch_session(pairing_key, update)
        return SharedSessionState.from_redis(merged)

    def append_segment(
        self,
        pairing_key: str,
        segment_kind: TimerMode,
        duration_minutes: int,
    ) -> SegmentLogRecord:
        stored = self.manager.append_log(
            pairing_key=pairing_key,
            segment_kind=segment_kind.value,
            duration_minutes=duration_minutes,
        )
        return SegmentLogRecord.from_redis(stored)

    def list_segments(self, pairing_key: str) -> List[SegmentLogRecord]:
        return [
            SegmentLogRecord.from_redis(record)
            for record in self.manager.get_logs(pairing_key)
        ]

    def open_session_channel(self, pairing_key: str):
        return self.manager.subscribe(self.manager.session_channel(pairing_key))

    def open_log_channel(self, pairing_key: str):
        return self.manager.subscribe(self.manager.log_channel(pairing_key))

    def close(self) -> None:
        self.manager.close()

    def __enter__(self) -> "RedisService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
