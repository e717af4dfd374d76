from pathlib import Path

import pytest

from haven_bot.config import DEFAULT_TIKTOK_API_URL, Settings

ENV_VARS = (
    "DISCORD_TOKEN",
    "LOG_LEVEL",
    "DOWNLOAD_DIR",
    "MAX_DURATION_SECONDS",
    "HTTP_TIMEOUT_SECONDS",
    "PIPELINE_TIMEOUT_SECONDS",
    "PANEL_DATA_FILE",
    "PANEL_LOGO_PATH",
    "TIKTOK_API_URL",
    "DEV_GUILD_ID",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings.from_env()

    assert settings.token == ""
    assert settings.log_level == "INFO"
    assert settings.max_duration_seconds == 600
    assert settings.http_timeout_seconds == 300.0
    assert settings.pipeline_timeout_seconds == 900.0
    assert settings.panel_data_file == Path("control_panel_data.json")
    assert settings.tiktok_api_url == DEFAULT_TIKTOK_API_URL
    assert settings.dev_guild_id is None


def test_overrides(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", " secret ")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("DOWNLOAD_DIR", "/tmp/haven")
    monkeypatch.setenv("MAX_DURATION_SECONDS", "300")
    monkeypatch.setenv("PIPELINE_TIMEOUT_SECONDS", "0")
    monkeypatch.setenv("DEV_GUILD_ID", "123456")

    settings = Settings.from_env()

    assert settings.token == "secret"
    assert settings.log_level == "DEBUG"
    assert settings.download_dir == Path("/tmp/haven")
    assert settings.max_duration_seconds == 300
    assert settings.pipeline_timeout_seconds == 0.0
    assert settings.dev_guild_id == 123456


def test_invalid_number_is_reported(monkeypatch):
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "soon")

    with pytest.raises(RuntimeError, match="HTTP_TIMEOUT_SECONDS"):
        Settings.from_env()
