from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from pydantic import BaseModel, Field

from pairtimer.models.session_state import TimerMode


def rounded_minutes(elapsed_seconds: float) -> int:
    """Half-up rounding, so 30 seconds counts as a minute and 29 does not."""
    return int(math.floor(elapsed_seconds / 60 + 0.5))


class SegmentLogRecord(BaseModel):
    """Immutable record of one finished or interrupted segment."""

    id: str
    pairingKey: str
    recordedAt: int
    segmentKind: TimerMode
    durationMinutes: int = Field(ge=1)

    @classmethod
    def from_redis(cls, data: Mapping[str, Any]) -> "SegmentLogRecord":
        return cls.model_validate(dict(data))

    def to_redis(self) -> Dict[str, str]:
        return {key: str(value) for key, value in self.model_dump(mode="json").items()}

    @property
    def recorded_at(self) -> datetime:
        return datetime.fromtimestamp(self.recordedAt / 1000, tz=timezone.utc)
