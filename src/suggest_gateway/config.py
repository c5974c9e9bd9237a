"""Configuration utilities for the suggestion gateway."""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration, read from ``SUGGEST_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(env_prefix="SUGGEST_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: Literal["development", "production", "test"] = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    matcher_mode: Literal["two_tier", "keyword"] = "two_tier"
    lexicon_backend: Literal["simulated", "http"] = "simulated"
    lexicon_base_url: Optional[str] = None
    lexicon_http_timeout: float = 5.0

    cache_fresh_ttl_seconds: float = 300.0
    cache_stale_ttl_seconds: float = 3600.0
    cache_max_entries: int = 10_000

    attempt_timeout_seconds: float = 1.0
    retry_count: int = 3
    retry_median_first_delay_seconds: float = 0.15
    retry_max_delay_seconds: float = 5.0

    simulated_failure_rate: float = 0.3
    simulated_latency_seconds: float = 0.0

    max_utterance_length: int = 2000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings."""
    return Settings()


def settings_dict() -> dict[str, Any]:
    """Convenience helper for exporting settings to logs."""
    return get_settings().model_dump()
