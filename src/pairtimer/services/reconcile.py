"""Reconciliation of the local timer mirror with shared documents.

Every document delivered by a session subscription is turned into a
``StateChange`` tagged with where it came from, and ``reduce`` is the only
place that folds such a change into the local state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet

from pairtimer.models.session_state import LocalTimerState, RunState, SharedSessionState


class Origin(str, Enum):
    SELF = "self"        # echo of a write made by this client
    REMOTE = "remote"    # written by the partner
    INITIAL = "initial"  # first read (or creation) when the subscription opened


@dataclass(frozen=True)
class StateChange:
    origin: Origin
    changed: FrozenSet[str]
    document: SharedSessionState

    @property
    def applies(self) -> bool:
        return self.origin is not Origin.SELF


def changed_fields(local: LocalTimerState, document: SharedSessionState) -> FrozenSet[str]:
    mirrored = local.to_shared_fields()
    return frozenset(
        name for name, value in mirrored.items()
        if getattr(document, name) != value
    )


def classify(
    local: LocalTimerState,
    document: SharedSessionState,
    self_id: str,
    initial: bool = False,
) -> StateChange:
    if initial:
        origin = Origin.INITIAL
    elif document.lastWriter == self_id:
        origin = Origin.SELF
    else:
        origin = Origin.REMOTE
    return StateChange(origin=origin, changed=changed_fields(local, document), document=document)


def _segment_budget(local: LocalTimerState, document: SharedSessionState, mirrored: LocalTimerState) -> int:
    if document.runState is RunState.STOPPED:
        return document.remainingSeconds

    mode = document.activeMode
    resized = mirrored.duration_for(mode) != local.duration_for(mode)
    if resized and document.runState is RunState.PAUSED:
        # a paused segment was reflowed to the new duration
        return document.remainingSeconds

    continuing = (
        local.run_state is not RunState.STOPPED
        and local.active_mode is mode
        and document.remainingSeconds <= local.remaining_seconds
        and local.segment_start_budget >= document.remainingSeconds
    )
    if continuing:
        return local.segment_start_budget
    return max(mirrored.duration_for(mode), document.remainingSeconds)


def reduce(local: LocalTimerState, change: StateChange) -> LocalTimerState:
    if not change.applies:
        return local

    document = change.document
    mirrored = LocalTimerState(
        remaining_seconds=document.remainingSeconds,
        run_state=document.runState,
        active_mode=document.activeMode,
        focus_duration_minutes=document.focusDurationMinutes,
        break_duration_minutes=document.breakDurationMinutes,
    )
    mirrored.segment_start_budget = _segment_budget(local, document, mirrored)
    return mirrored
