import logging
import threading
from typing import List, Optional, Union

from pairtimer.exceptions import IdentifierError, SettingsError
from pairtimer.identity import normalize_identifier, pairing_key, require_identifier
from pairtimer.models.segment_log import SegmentLogRecord
from pairtimer.models.session_state import LocalTimerState, RunState, SharedSessionState, TimerMode
from pairtimer.services import reconcile
from pairtimer.services.countdown_service import CountdownEngine, SegmentComplete
from pairtimer.services.log_service import LogFeed, SessionLogRecorder
from pairtimer.services.notifier import LoggingNotifier, Notifier, Severity
from pairtimer.services.redis_service import RedisService
from pairtimer.services.settings_service import SettingsPropagator, TimerSettings
from pairtimer.services.sync_service import SessionSubscription, SharedStateSynchronizer
from pairtimer.utils.preferences import PARTNER_ID, USER_ID, PreferenceStore

logger = logging.getLogger(__name__)


class PairTimerController:
    """Start/pause/stop/switch state machine for one participant's device.

    Every user action mutates the local mirror first and then pushes the
    intended fields to the shared document. Remote failures are reported
    through the notifier and never undo the local change.
    """

    def __init__(
        self,
        redis_service: RedisService,
        preferences: PreferenceStore,
        notifier: Optional[Notifier] = None,
        *,
        elect_completion_writer: bool = False,
        background: bool = True,
        listen_interval: float = 1.0,
    ) -> None:
        self.redis_service = redis_service
        self.preferences = preferences
        self.notifier = notifier or LoggingNotifier()
        self.elect_completion_writer = elect_completion_writer
        self.background = background
        self.listen_interval = listen_interval

        self.engine = CountdownEngine()
        self.recorder = SessionLogRecorder(redis_service, self.notifier)
        self.settings = SettingsPropagator(preferences, self.notifier)
        self.log_feed = LogFeed(
            redis_service, self.notifier,
            background=background, listen_interval=listen_interval)

        self._lock = threading.RLock()
        focus, brk = preferences.load_durations()
        self._local = LocalTimerState.fresh(focus, brk)
        self._self_id: Optional[str] = None
        self._partner_id: Optional[str] = None
        self._pairing_key: Optional[str] = None
        self._synchronizer: Optional[SharedStateSynchronizer] = None
        self._session_sub: Optional[SessionSubscription] = None

    # ==================== OBSERVABLES ====================

    @property
    def self_id(self) -> Optional[str]:
        return self._self_id

    @property
    def partner_id(self) -> Optional[str]:
        return self._partner_id

    @property
    def pairing_key(self) -> Optional[str]:
        return self._pairing_key

    @property
    def is_paired(self) -> bool:
        return self._pairing_key is not None

    @property
    def remaining_seconds(self) -> int:
        with self._lock:
            return self._local.remaining_seconds

    @property
    def run_state(self) -> RunState:
        with self._lock:
            return self._local.run_state

    @property
    def active_mode(self) -> TimerMode:
        with self._lock:
            return self._local.active_mode

    @property
    def log_entries(self) -> List[SegmentLogRecord]:
        return self.log_feed.entries

    def snapshot(self) -> LocalTimerState:
        with self._lock:
            return self._local.copy()

    # ==================== IDENTITY ====================

    def restore(self) -> None:
        self._self_id = normalize_identifier(self.preferences.get(USER_ID))
        self._partner_id = normalize_identifier(self.preferences.get(PARTNER_ID))
        if self._self_id and self._self_id == self._partner_id:
            self._partner_id = None
        self._update_pairing()

    def set_self_id(self, raw: str) -> bool:
        try:
            token = require_identifier(raw)
        except IdentifierError as e:
            self.notifier.notify("Oops!", str(e), Severity.DESTRUCTIVE)
            return False
        if token == self._partner_id:
            self.notifier.notify(
                "Hehe!", "Your ID can't be the same as your partner's.", Severity.DESTRUCTIVE)
            return False

        self._self_id = token
        self.preferences.set(USER_ID, token)
        self.notifier.notify("Welcome!", f"Your ID is {token}. Connect with your partner!")
        self._update_pairing()
        return True

    def set_partner_id(self, raw: str) -> bool:
        try:
            token = require_identifier(raw, "your partner's User ID")
        except IdentifierError as e:
            self.notifier.notify("Oops!", str(e), Severity.DESTRUCTIVE)
            return False
        if token == self._self_id:
            self.notifier.notify(
                "Hehe!", "Partner ID can't be your own ID.", Severity.DESTRUCTIVE)
            return False

        self._partner_id = token
        self.preferences.set(PARTNER_ID, token)
        self.notifier.notify("Partner Linked!", f"Ready for focused time with {token}!")
        self._update_pairing()
        return True

    def disconnect_partner(self) -> None:
        self._partner_id = None
        self.preferences.remove(PARTNER_ID)
        self._update_pairing()
        self.notifier.notify(
            "Partner Disconnected", "You can link with your partner again anytime.")

    def logout(self) -> None:
        self._self_id = None
        self._partner_id = None
        self.preferences.remove(USER_ID, PARTNER_ID)
        self._update_pairing()
        with self._lock:
            self._reset_local()
        self.notifier.notify("Logged Out", "Come back soon for more focus time!")

    def _update_pairing(self) -> None:
        key = pairing_key(self._self_id, self._partner_id)
        with self._lock:
            if key == self._pairing_key:
                return
            stale = self._session_sub
            self._session_sub = None
            self._pairing_key = key
            if key is None:
                self._synchronizer = None
                self._reset_local()
                synchronizer = None
            else:
                synchronizer = SharedStateSynchronizer(
                    self.redis_service,
                    self_id=self._self_id,
                    pairing_key=key,
                    snapshot=self.snapshot,
                    notifier=self.notifier,
                    listen_interval=self.listen_interval,
                )
                self._synchronizer = synchronizer

        if stale is not None:
            stale.close()

        if synchronizer is not None:
            logger.info(f"Paired as {key}")
            subscription = synchronizer.subscribe(self._on_document, background=self.background)
            with self._lock:
                if self._pairing_key == key and self._session_sub is None:
                    self._session_sub = subscription
                    subscription = None
            if subscription is not None:
                subscription.close()
        else:
            logger.info("Unpaired")

        self.log_feed.watch(key)

    def _reset_local(self) -> None:
        focus, brk = self.preferences.load_durations()
        self._local = LocalTimerState.fresh(focus, brk)

    def _on_document(self, key: str, document: SharedSessionState, initial: bool) -> None:
        with self._lock:
            if key != self._pairing_key or self._self_id is None:
                logger.debug(f"Ignoring document for stale pairing {key}")
                return
            change = reconcile.classify(self._local, document, self._self_id, initial=initial)
            if not change.applies:
                logger.debug(f"Ignoring self-echo on {key}")
                return
            self._local = reconcile.reduce(self._local, change)
            if change.changed:
                logger.info(
                    f"Applied {change.origin.value} update from {document.lastWriter}: "
                    f"{', '.join(sorted(change.changed))}")

    # ==================== TIMER ACTIONS ====================

    def _require_pairing(self) -> Optional[SharedStateSynchronizer]:
        if self._pairing_key is None or self._synchronizer is None:
            self.notifier.notify(
                "Not Connected",
                "Please set your User ID and connect with your partner first.",
                Severity.DESTRUCTIVE,
            )
            return None
        return self._synchronizer

    def _record_segment(self, mode: TimerMode, elapsed_seconds: int) -> None:
        self.recorder.record(mode, elapsed_seconds, self._pairing_key)

    def start(self) -> bool:
        with self._lock:
            synchronizer = self._require_pairing()
            if synchronizer is None:
                return False

            state = self._local
            if state.run_state is RunState.RUNNING:
                return True
            if state.remaining_seconds == 0:
                state.remaining_seconds = state.duration_for(state.active_mode)
            # a resumed segment keeps its original budget
            if state.run_state is RunState.STOPPED or state.segment_start_budget < state.remaining_seconds:
                state.segment_start_budget = state.remaining_seconds
            state.run_state = RunState.RUNNING

            synchronizer.push(
                runState=state.run_state,
                remainingSeconds=state.remaining_seconds,
                activeMode=state.active_mode,
            )
            return True

    def pause(self) -> bool:
        with self._lock:
            synchronizer = self._require_pairing()
            if synchronizer is None:
                return False

            state = self._local
            if state.run_state is not RunState.RUNNING:
                return False
            state.run_state = RunState.PAUSED

            synchronizer.push(runState=state.run_state, remainingSeconds=state.remaining_seconds)
            return True

    def stop(self) -> bool:
        with self._lock:
            synchronizer = self._require_pairing()
            if synchronizer is None:
                return False

            state = self._local
            if state.run_state is not RunState.STOPPED:
                self._record_segment(state.active_mode, state.elapsed_seconds)
            state.reset_segment(state.active_mode)

            synchronizer.push(
                runState=state.run_state,
                remainingSeconds=state.remaining_seconds,
                activeMode=state.active_mode,
            )
            return True

    def switch_mode(self, mode: Union[TimerMode, str]) -> bool:
        try:
            target = TimerMode(mode)
        except ValueError:
            self.notifier.notify("Oops!", f"Unknown mode {mode!r}.", Severity.DESTRUCTIVE)
            return False

        with self._lock:
            synchronizer = self._require_pairing()
            if synchronizer is None:
                return False

            state = self._local
            if state.run_state is not RunState.STOPPED:
                self._record_segment(state.active_mode, state.elapsed_seconds)
            state.reset_segment(target)

            synchronizer.push(
                activeMode=state.active_mode,
                runState=state.run_state,
                remainingSeconds=state.remaining_seconds,
            )
            return True

    def apply_settings(self, focus_minutes, break_minutes) -> bool:
        try:
            settings = TimerSettings.from_values(focus_minutes, break_minutes)
        except SettingsError as e:
            self.notifier.notify("Invalid Settings", str(e), Severity.DESTRUCTIVE)
            return False

        with self._lock:
            return self.settings.apply(self._local, settings, self._synchronizer)

    # ==================== COUNTDOWN ====================

    def _owns_completion(self) -> bool:
        if not self.elect_completion_writer:
            return True
        return self._self_id == min(self._self_id, self._partner_id)

    def tick(self) -> Optional[SegmentComplete]:
        with self._lock:
            completion = self.engine.tick(self._local)
            if completion is None:
                return None

            self.notifier.notify(
                f"{completion.mode.label} complete!",
                f"Let's start our {completion.next_mode.label}.",
            )
            if self._synchronizer is None:
                return completion
            if not self._owns_completion():
                logger.info(f"Leaving {completion.mode.value} completion write to {self._partner_id}")
                return completion

            self._record_segment(completion.mode, completion.start_budget)
            self._synchronizer.push(
                activeMode=completion.next_mode,
                remainingSeconds=completion.next_remaining,
                runState=RunState.STOPPED,
            )
            return completion

    def poll_remote(self, timeout: float = 0.0) -> int:
        """Drain pending channel messages when no listener threads run."""
        if self.background:
            return 0
        handled = 0
        subscription = self._session_sub
        if subscription is not None:
            handled += subscription.poll(timeout=timeout)
        handled += self.log_feed.poll(timeout=timeout)
        return handled

    def close(self) -> None:
        with self._lock:
            stale = self._session_sub
            self._session_sub = None
        if stale is not None:
            stale.close()
        self.log_feed.close()
