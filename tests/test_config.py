import pytest

from meeting_relay.config import ConfigurationError, Settings

ENV_NAMES = (
    "PORT",
    "ATTENDEE_API_KEY",
    "ATTENDEE_BASE_URL",
    "ZOOM_WEBHOOK_SECRET_TOKEN",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "OPENAI_MODEL",
    "CORS_ORIGIN",
    "DATA_DIR",
    "LOGS_DIR",
    "LOG_LEVEL",
    "UPSTREAM_TIMEOUT",
    "HEARTBEAT_INTERVAL",
    "PERSIST_TRANSCRIPTS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    settings = Settings.from_env(load_env_file=False)

    assert settings.port == 5005
    assert settings.upstream_timeout == 15.0
    assert settings.heartbeat_interval == 15.0
    assert settings.persist_transcripts is False
    assert settings.data_dir == str(tmp_path / "data")
    assert settings.missing() == ["ATTENDEE_API_KEY", "ATTENDEE_BASE_URL", "ZOOM_WEBHOOK_SECRET_TOKEN"]


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("ATTENDEE_API_KEY", " key ")
    monkeypatch.setenv("ATTENDEE_BASE_URL", "https://attendee.test")
    monkeypatch.setenv("ZOOM_WEBHOOK_SECRET_TOKEN", "secret")
    monkeypatch.setenv("CORS_ORIGIN", "https://viewer.test")
    monkeypatch.setenv("UPSTREAM_TIMEOUT", "5")
    monkeypatch.setenv("PERSIST_TRANSCRIPTS", "yes")

    settings = Settings.from_env(load_env_file=False)

    assert settings.port == 8080
    assert settings.attendee_api_key == "key"
    assert settings.cors_origin == "https://viewer.test"
    assert settings.upstream_timeout == 5.0
    assert settings.persist_transcripts is True
    assert settings.missing() == []
    assert settings.require("zoom_webhook_secret_token") == "secret"


@pytest.mark.parametrize("name, value", [("PORT", "http"), ("UPSTREAM_TIMEOUT", "soon")])
def test_bad_numbers_fail_fast(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigurationError):
        Settings.from_env(load_env_file=False)


def test_require_missing_value():
    with pytest.raises(ConfigurationError, match="ZOOM_WEBHOOK_SECRET_TOKEN"):
        Settings().require("zoom_webhook_secret_token")
    with pytest.raises(KeyError):
        Settings().require("no_such_setting")
