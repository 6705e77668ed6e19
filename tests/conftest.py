import sys
from pathlib import Path
from typing import List, Optional

import fakeredis
import pytest

# Make src importable without an editable install
REPO_ROOT = Path(__file__).resolve().parent.parent
SRC = REPO_ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from pairtimer.database.redis_manager import RedisManager  # noqa: E402
from pairtimer.services.notifier import Notification, Notifier, Severity  # noqa: E402
from pairtimer.services.redis_service import RedisConfig, RedisService  # noqa: E402
from pairtimer.services.timer_controller import PairTimerController  # noqa: E402
from pairtimer.utils.preferences import PreferenceStore  # noqa: E402


class RecordingNotifier(Notifier):

    def __init__(self) -> None:
        self.notifications: List[Notification] = []

    def _deliver(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def titles(self, severity: Optional[Severity] = None) -> List[str]:
        return [
            n.title for n in self.notifications
            if severity is None or n.severity is severity
        ]


def build_service(server: fakeredis.FakeServer) -> RedisService:
    client = fakeredis.FakeRedis(server=server, decode_responses=True)
    return RedisService(manager=RedisManager(client=client), config=RedisConfig())


@pytest.fixture()
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture()
def redis_service(redis_server):
    service = build_service(redis_server)
    yield service
    service.close()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def preferences(tmp_path):
    return PreferenceStore(tmp_path / "prefs")


@pytest.fixture()
def make_controller(redis_server, tmp_path):
    created = []

    def _make(name: str, **kwargs) -> PairTimerController:
        controller = PairTimerController(
            build_service(redis_server),
            PreferenceStore(tmp_path / name),
            RecordingNotifier(),
            background=False,
            **kwargs,
        )
        created.append(controller)
        return controller

    yield _make

    for controller in created:
        controller.close()


@pytest.fixture()
def paired(make_controller):
    """ALICE and BOB, both connected to the same shared session."""
    alice = make_controller("alice")
    bob = make_controller("bob")
    alice.set_self_id("alice")
    alice.set_partner_id("bob")
    bob.set_self_id("bob")
    bob.set_partner_id("alice")
    alice.poll_remote()
    bob.poll_remote()
    return alice, bob
