"""Tests for configuration helpers."""

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from workflow_webhooks import config  # noqa: E402

_OPTIONAL_VARS = (
    "SLACK_BOT_TOKEN",
    "SLACK_SIGNING_SECRET",
    "SUSPENSION_TIMEOUT_SECONDS",
    "SWEEP_INTERVAL_SECONDS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _OPTIONAL_VARS:
        monkeypatch.delenv(var, raising=False)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


def test_get_settings_parses_expected_fields(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///local.db")
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-token")
    monkeypatch.setenv("SLACK_SIGNING_SECRET", "secret")
    monkeypatch.setenv("SUSPENSION_TIMEOUT_SECONDS", "600")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = config.get_settings()

    assert settings.database_url == "sqlite:///local.db"
    assert settings.slack_bot_token == "xoxb-token"
    assert settings.slack_signing_secret == "secret"
    assert settings.suspension_timeout_seconds == 600
    assert settings.sweep_interval_seconds == 30
    assert settings.log_level == "DEBUG"


def test_optional_settings_default_when_absent(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///local.db")
    monkeypatch.setenv("SLACK_SIGNING_SECRET", "   ")

    settings = config.get_settings()

    assert settings.slack_bot_token is None
    assert settings.slack_signing_secret is None
    assert settings.suspension_timeout_seconds == 86400
    assert settings.log_level == "INFO"


def test_missing_environment_variables_raise_runtime_error(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)

    with pytest.raises(RuntimeError) as err:
        config.get_settings()

    assert "DATABASE_URL" in str(err.value)


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("SUSPENSION_TIMEOUT_SECONDS", "0"),
        ("SWEEP_INTERVAL_SECONDS", "-5"),
        ("LOG_LEVEL", "chatty"),
    ],
)
def test_invalid_values_raise_runtime_error(monkeypatch, name, value):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///local.db")
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError) as err:
        config.get_settings()

    assert "Invalid configuration" in str(err.value)
