"""Tests for configuration helpers."""

from datetime import timedelta
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from neynar_webhook import config  # noqa: E402

REQUIRED = (
    "WEBHOOK_SECRET",
    "BOT_USERNAME",
    "BOT_FID",
    "NEYNAR_API_KEY",
    "SIGNER_UUID",
    "OPENAI_API_KEY",
)


def _seed_env(monkeypatch):
    monkeypatch.setenv("WEBHOOK_SECRET", "secret")
    monkeypatch.setenv("BOT_USERNAME", "@mienfoo.eth")
    monkeypatch.setenv("BOT_FID", " 834885 ")
    monkeypatch.setenv("NEYNAR_API_KEY", "neynar-key")
    monkeypatch.setenv("SIGNER_UUID", "signer")
    monkeypatch.setenv("OPENAI_API_KEY", "openai-key")
    config.get_settings.cache_clear()


def test_get_settings_parses_expected_fields(monkeypatch):
    _seed_env(monkeypatch)

    settings = config.get_settings()

    assert settings.webhook_secret == "secret"
    assert settings.bot_username == "mienfoo.eth"
    assert settings.bot_fid == "834885"
    assert settings.neynar_api_key == "neynar-key"
    assert settings.signer_uuid == "signer"
    assert settings.openai_api_key == "openai-key"


def test_defaults_match_recommended_bounds(monkeypatch):
    _seed_env(monkeypatch)
    for var in ("LOG_LEVEL", "ENVIRONMENT", "RATE_LIMIT_MAX_REQUESTS", "REPLY_CHANNEL_ID"):
        monkeypatch.delenv(var, raising=False)

    settings = config.get_settings()

    assert settings.log_level == "INFO"
    assert settings.is_production is True
    assert settings.rate_limit_max_requests == 30
    assert settings.rate_limit_window == timedelta(seconds=60)
    assert settings.dedup_max_entries == 1000
    assert settings.dedup_ttl == timedelta(minutes=10)
    assert settings.response_cache_ttl == timedelta(minutes=5)
    assert settings.max_body_bytes == 5 * 1024 * 1024
    assert settings.reply_channel_id is None


def test_optional_overrides_are_parsed(monkeypatch):
    _seed_env(monkeypatch)
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("ENVIRONMENT", "Development")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "5")
    monkeypatch.setenv("REPLY_CHANNEL_ID", " collectorscanyon ")

    settings = config.get_settings()

    assert settings.log_level == "DEBUG"
    assert settings.is_production is False
    assert settings.rate_limit_max_requests == 5
    assert settings.reply_channel_id == "collectorscanyon"


def test_non_positive_limits_are_rejected(monkeypatch):
    _seed_env(monkeypatch)
    monkeypatch.setenv("DEDUP_TTL_SECONDS", "0")

    with pytest.raises(config.ConfigError) as err:
        config.get_settings()

    assert "DEDUP_TTL_SECONDS" in str(err.value)


def test_missing_environment_variables_raise_config_error(monkeypatch):
    for var in REQUIRED:
        monkeypatch.delenv(var, raising=False)
    config.get_settings.cache_clear()

    with pytest.raises(config.ConfigError) as err:
        config.get_settings()

    message = str(err.value)
    for var in REQUIRED:
        assert var in message
    assert isinstance(err.value, RuntimeError)
