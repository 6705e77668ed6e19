from pairtimer.models.session_state import LocalTimerState, RunState, SharedSessionState, TimerMode
from pairtimer.services.reconcile import Origin, classify, reduce


def document(**overrides) -> SharedSessionState:
    fields = dict(
        remainingSeconds=1500,
        runState=RunState.STOPPED,
        activeMode=TimerMode.FOCUS,
        focusDurationMinutes=25,
        breakDurationMinutes=5,
        lastWriter="BOB",
        writeTimestamp=1,
    )
    fields.update(overrides)
    return SharedSessionState(**fields)


def test_classify_tags_origin_by_writer():
    local = LocalTimerState.fresh()

    assert classify(local, document(lastWriter="ALICE"), "ALICE").origin is Origin.SELF
    assert classify(local, document(lastWriter="BOB"), "ALICE").origin is Origin.REMOTE
    assert classify(local, document(lastWriter="ALICE"), "ALICE", initial=True).origin is Origin.INITIAL


def test_self_change_leaves_local_state_alone():
    local = LocalTimerState.fresh()
    local.run_state = RunState.RUNNING
    local.remaining_seconds = 1200

    change = classify(local, document(lastWriter="ALICE", remainingSeconds=10), "ALICE")

    assert reduce(local, change) is local
    assert local.remaining_seconds == 1200


def test_remote_change_overwrites_mirror_and_lists_changed_fields():
    local = LocalTimerState.fresh()
    remote = document(runState=RunState.RUNNING, remainingSeconds=1400, breakDurationMinutes=10)

    change = classify(local, remote, "ALICE")
    mirrored = reduce(local, change)

    assert change.changed == {"runState", "remainingSeconds", "breakDurationMinutes"}
    assert mirrored.run_state is RunState.RUNNING
    assert mirrored.remaining_seconds == 1400
    assert mirrored.break_duration_minutes == 10
    assert mirrored.segment_start_budget == 1500


def test_remote_continuation_keeps_segment_budget():
    local = LocalTimerState.fresh()
    local.run_state = RunState.RUNNING
    local.remaining_seconds = 1000
    local.segment_start_budget = 1200

    mirrored = reduce(local, classify(local, document(runState=RunState.PAUSED, remainingSeconds=990), "ALICE"))

    assert mirrored.segment_start_budget == 1200


def test_remote_stop_resets_budget_to_remaining():
    local = LocalTimerState.fresh()
    local.run_state = RunState.RUNNING
    local.segment_start_budget = 1500

    mirrored = reduce(local, classify(local, document(activeMode=TimerMode.BREAK, remainingSeconds=300), "ALICE"))

    assert mirrored.active_mode is TimerMode.BREAK
    assert mirrored.segment_start_budget == 300


def test_paused_segment_resized_by_partner_restarts_budget():
    local = LocalTimerState.fresh()
    local.run_state = RunState.PAUSED
    local.remaining_seconds = 1440
    local.segment_start_budget = 1500

    remote = document(runState=RunState.PAUSED, remainingSeconds=600, focusDurationMinutes=10)
    mirrored = reduce(local, classify(local, remote, "ALICE"))

    assert mirrored.remaining_seconds == 600
    assert mirrored.segment_start_budget == 600
    assert mirrored.elapsed_seconds == 0


def test_remote_time_ahead_of_local_is_not_a_continuation():
    local = LocalTimerState.fresh()
    local.run_state = RunState.RUNNING
    local.remaining_seconds = 900
    local.segment_start_budget = 1000

    mirrored = reduce(local, classify(local, document(runState=RunState.RUNNING, remainingSeconds=950), "ALICE"))

    assert mirrored.segment_start_budget == 1500
