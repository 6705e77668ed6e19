import fakeredis
import pytest

from pairtimer.config import AppConfig, to_bool
from pairtimer.database import redis_manager
from pairtimer.services.redis_service import RedisConfig


def test_from_uri_parses_all_parts():
    config = RedisConfig.from_uri("redis://:secret@cache.local:6380/2")

    assert config.host == "cache.local"
    assert config.port == 6380
    assert config.db == 2
    assert config.password == "secret"


def test_from_uri_defaults():
    config = RedisConfig.from_uri("redis://")

    assert config.host == "localhost"
    assert config.port == 6379
    assert config.db == 0
    assert config.password is None


def test_from_uri_rejects_other_schemes():
    with pytest.raises(ValueError):
        RedisConfig.from_uri("http://localhost:6379")


def test_redis_config_from_env(monkeypatch, tmp_path):
    monkeypatch.delenv("REDIS_URI", raising=False)
    monkeypatch.setenv("REDIS_HOST", "redis.internal")
    monkeypatch.setenv("REDIS_PORT", "6390")
    monkeypatch.setenv("REDIS_DB", "3")

    config = RedisConfig.from_env(env_path=tmp_path / "missing.env")

    assert (config.host, config.port, config.db) == ("redis.internal", 6390, 3)


def test_app_config_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("PAIRTIMER_PREFS_DIR", str(tmp_path / "prefs"))
    monkeypatch.setenv("PAIRTIMER_TICK_INTERVAL", "0.5")
    monkeypatch.setenv("PAIRTIMER_LISTEN_INTERVAL", "nope")
    monkeypatch.setenv("PAIRTIMER_ELECT_COMPLETION_WRITER", "yes")

    config = AppConfig.from_env(env_path=tmp_path / "missing.env")

    assert config.preferences_dir == tmp_path / "prefs"
    assert config.tick_interval == 0.5
    assert config.listen_interval == 1.0
    assert config.elect_completion_writer is True


def test_env_file_is_loaded(monkeypatch, tmp_path):
    monkeypatch.setenv("PAIRTIMER_TICK_INTERVAL", "9")
    monkeypatch.delenv("PAIRTIMER_TICK_INTERVAL")
    env_file = tmp_path / ".env"
    env_file.write_text("PAIRTIMER_TICK_INTERVAL=2\n", encoding="utf-8")

    config = AppConfig.from_env(env_path=env_file)

    assert config.tick_interval == 2.0


@pytest.mark.parametrize("raw, expected", [
    ("1", True), ("TRUE", True), ("on", True), ("0", False), ("no", False), (None, True),
])
def test_to_bool(raw, expected):
    assert to_bool(raw) is expected


def test_manager_always_decodes_responses(monkeypatch, tmp_path):
    monkeypatch.setattr(redis_manager.redis, "Redis", fakeredis.FakeRedis)
    monkeypatch.delenv("REDIS_URI", raising=False)
    monkeypatch.delenv("REDIS_PASSWORD", raising=False)
    monkeypatch.setenv("REDIS_PORT", "6391")
    monkeypatch.setenv("REDIS_DECODE_RESPONSES", "false")

    manager = RedisConfig.from_env(env_path=tmp_path / "missing.env").create_manager()
    manager.create_session("ALICE_BOB", {"runState": "stopped"})

    stored = manager.get_session("ALICE_BOB")
    assert stored["runState"] == "stopped"
    assert all(isinstance(value, str) for value in stored.values())
    manager.close()
