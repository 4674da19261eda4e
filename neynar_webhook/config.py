"""Pydantic-based configuration helpers for the Neynar webhook bot."""

from __future__ import annotations

import os
from datetime import timedelta
from functools import lru_cache
from typing import Iterable, List

from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_SYSTEM_PROMPT = (
    "You are a friendly Farcaster bot. Reply concisely in two or three sentences."
)


class ConfigError(RuntimeError):
    """Raised when the environment cannot produce a usable configuration."""


class AppSettings(BaseModel):
    """Settings required to verify webhooks and talk to downstream services."""

    webhook_secret: str = Field(..., alias="WEBHOOK_SECRET", min_length=1)
    bot_username: str = Field(..., alias="BOT_USERNAME", min_length=1)
    bot_fid: str = Field(..., alias="BOT_FID", min_length=1)
    neynar_api_key: str = Field(..., alias="NEYNAR_API_KEY", min_length=1)
    signer_uuid: str = Field(..., alias="SIGNER_UUID", min_length=1)
    openai_api_key: str = Field(..., alias="OPENAI_API_KEY", min_length=1)

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    environment: str = Field("production", alias="ENVIRONMENT")
    max_body_bytes: int = Field(5 * 1024 * 1024, alias="MAX_BODY_BYTES")
    rate_limit_max_requests: int = Field(30, alias="RATE_LIMIT_MAX_REQUESTS")
    rate_limit_window_seconds: int = Field(60, alias="RATE_LIMIT_WINDOW_SECONDS")
    dedup_max_entries: int = Field(1000, alias="DEDUP_MAX_ENTRIES")
    dedup_ttl_seconds: int = Field(600, alias="DEDUP_TTL_SECONDS")
    response_cache_max_entries: int = Field(500, alias="RESPONSE_CACHE_MAX_ENTRIES")
    response_cache_ttl_seconds: int = Field(300, alias="RESPONSE_CACHE_TTL_SECONDS")
    outbound_timeout_seconds: float = Field(30.0, alias="OUTBOUND_TIMEOUT_SECONDS")
    outbound_max_attempts: int = Field(3, alias="OUTBOUND_MAX_ATTEMPTS")

    openai_model: str = Field("gpt-4-turbo-preview", alias="OPENAI_MODEL")
    openai_base_url: str = Field("https://api.openai.com", alias="OPENAI_BASE_URL")
    neynar_base_url: str = Field("https://api.neynar.com", alias="NEYNAR_BASE_URL")
    reply_channel_id: str | None = Field(None, alias="REPLY_CHANNEL_ID")
    system_prompt: str = Field(DEFAULT_SYSTEM_PROMPT, alias="SYSTEM_PROMPT")

    @field_validator("bot_username")
    @classmethod
    def _strip_handle(cls, value: str) -> str:
        cleaned = value.strip().lstrip("@")
        if not cleaned:
            raise ValueError("BOT_USERNAME must not be blank")
        return cleaned

    @field_validator("bot_fid")
    @classmethod
    def _strip_fid(cls, value: str) -> str:
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @field_validator("environment")
    @classmethod
    def _lower_environment(cls, value: str) -> str:
        return value.strip().lower() or "production"

    @field_validator("reply_channel_id")
    @classmethod
    def _blank_channel_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator(
        "max_body_bytes",
        "rate_limit_max_requests",
        "rate_limit_window_seconds",
        "dedup_max_entries",
        "dedup_ttl_seconds",
        "response_cache_max_entries",
        "response_cache_ttl_seconds",
        "outbound_max_attempts",
    )
    @classmethod
    def _ensure_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Limits must be greater than zero")
        return value

    @field_validator("outbound_timeout_seconds")
    @classmethod
    def _ensure_positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Timeouts must be greater than zero")
        return value

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def rate_limit_window(self) -> timedelta:
        return timedelta(seconds=self.rate_limit_window_seconds)

    @property
    def dedup_ttl(self) -> timedelta:
        return timedelta(seconds=self.dedup_ttl_seconds)

    @property
    def response_cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.response_cache_ttl_seconds)


def _format_missing(fields: Iterable[str]) -> str:
    """Return a human-friendly comma-separated list of missing env vars."""

    unique: List[str] = []
    for field in fields:
        if field not in unique:
            unique.append(field)
    return ", ".join(unique)


@lru_cache()
def get_settings() -> AppSettings:
    """Fetch and cache settings from environment variables."""

    try:
        return AppSettings.model_validate(os.environ)
    except ValidationError as exc:
        invalid = [str(error["loc"][0]) for error in exc.errors()]
        message = (
            "Missing or invalid environment variables: "
            f"{_format_missing(invalid)}"
        )
        raise ConfigError(message) from exc
