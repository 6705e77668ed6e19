import json

import pytest

from pairtimer.exceptions import DocumentNotFoundError
from pairtimer.models.session_state import SharedSessionState

KEY = "ALICE_BOB"


def initial_fields(writer="ALICE"):
    return SharedSessionState.initial(writer, 25, 5).to_redis()


def test_create_session_only_when_absent(redis_service):
    manager = redis_service.manager

    created = manager.create_session(KEY, initial_fields("ALICE"))
    second = manager.create_session(KEY, initial_fields("BOB"))

    assert created["lastWriter"] == "ALICE"
    assert second is None
    assert manager.get_session(KEY)["lastWriter"] == "ALICE"


def test_create_session_replace_overwrites(redis_service):
    manager = redis_service.manager
    manager.create_session(KEY, initial_fields("ALICE"))

    fields = initial_fields("BOB")
    fields["remainingSeconds"] = "42"
    manager.create_session(KEY, fields, replace=True)

    stored = manager.get_session(KEY)
    assert stored["lastWriter"] == "BOB"
    assert stored["remainingSeconds"] == "42"


def test_patch_session_requires_document(redis_service):
    with pytest.raises(DocumentNotFoundError):
        redis_service.manager.patch_session(KEY, {"runState": "running"})

    assert redis_service.manager.get_session(KEY) is None


def test_patch_merges_and_bumps_timestamp(redis_service):
    manager = redis_service.manager
    created = manager.create_session(KEY, initial_fields())

    first = manager.patch_session(KEY, {"runState": "running"})
    second = manager.patch_session(KEY, {"runState": "paused"})

    assert first["remainingSeconds"] == "1500"
    assert int(created["writeTimestamp"]) < int(first["writeTimestamp"]) < int(second["writeTimestamp"])
    assert manager.get_session(KEY)["runState"] == "paused"


def test_patch_publishes_full_document(redis_service):
    manager = redis_service.manager
    manager.create_session(KEY, initial_fields())
    pubsub = manager.subscribe(manager.session_channel(KEY))

    manager.patch_session(KEY, {"runState": "running", "lastWriter": "BOB"})

    messages = []
    while True:
        message = pubsub.get_message(timeout=0.0)
        if message is None:
            break
        if message["type"] == "message":
            messages.append(json.loads(message["data"]))
    pubsub.close()

    assert len(messages) == 1
    assert messages[0]["runState"] == "running"
    assert messages[0]["lastWriter"] == "BOB"
    assert messages[0]["focusDurationMinutes"] == "25"


def test_logs_are_read_newest_first(redis_service):
    manager = redis_service.manager
    ids = [manager.append_log(KEY, "focus", minutes)["id"] for minutes in (25, 5, 25)]

    logs = manager.get_logs(KEY)

    assert {log["id"] for log in logs} == set(ids)
    recorded = [int(log["recordedAt"]) for log in logs]
    assert recorded == sorted(recorded, reverse=True)
    assert all(log["id"].startswith("l_") for log in logs)
    assert manager.get_logs("CARL_DAVE") == []
