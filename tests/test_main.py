import pytest

from pairtimer.config import AppConfig
from pairtimer.main import PairTimerApp, format_clock, parse_args
from pairtimer.models.session_state import RunState
from pairtimer.services.redis_service import RedisConfig


@pytest.mark.parametrize("seconds, expected", [
    (1500, "25:00"),
    (61, "01:01"),
    (0, "00:00"),
    (-3, "00:00"),
])
def test_format_clock(seconds, expected):
    assert format_clock(seconds) == expected


@pytest.fixture()
def app(make_controller, tmp_path):
    app = PairTimerApp(AppConfig(preferences_dir=tmp_path), RedisConfig())
    app.controller = make_controller("alice")
    return app


def test_commands_drive_the_controller(app):
    assert app.handle_command("id alice")
    assert app.handle_command("partner bob")
    assert app.controller.pairing_key == "ALICE_BOB"

    app.handle_command("start")
    assert app.controller.run_state is RunState.RUNNING

    app.handle_command("pause")
    assert app.controller.run_state is RunState.PAUSED


def test_status_line(app):
    assert app.status_line().startswith("Focus Time 25:00 [stopped] not paired")

    app.handle_command("id alice")
    app.handle_command("partner bob")
    assert app.status_line().endswith("paired as ALICE_BOB")


def test_unknown_command_keeps_running(app, capsys):
    assert app.handle_command("dance")
    assert "Unknown command" in capsys.readouterr().out


def test_quit_stops_the_loop(app):
    assert app.handle_command("quit") is False
    assert app.handle_command("exit") is False
    assert app.handle_command("") is True


@pytest.mark.parametrize("value", ["0", "-1", "nan", "soon"])
def test_tick_interval_must_be_positive(value):
    with pytest.raises(SystemExit):
        parse_args(["--tick-interval", value])


def test_tick_interval_accepts_fractions():
    assert parse_args(["-t", "0.5"]).tick_interval == 0.5
    assert parse_args([]).tick_interval is None
