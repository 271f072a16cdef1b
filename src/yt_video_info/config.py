"""
config.py — Runtime settings read from the environment.

    MCP_DEBUG / DEBUG / YT_INFO_DEBUG   Enable logging (off by default).
    LOG_LEVEL / YT_INFO_LOG_LEVEL       Minimum level: debug, info, warn, error.
    YT_INFO_REQUEST_TIMEOUT             Per-request HTTP timeout in seconds.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVEL_NAMES = ("debug", "info", "warn", "warning", "error")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="YT_INFO_",
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    debug: bool = Field(
        default=False,
        validation_alias=AliasChoices("YT_INFO_DEBUG", "MCP_DEBUG", "DEBUG"),
    )
    log_level: str = Field(
        default="info",
        validation_alias=AliasChoices("YT_INFO_LOG_LEVEL", "LOG_LEVEL"),
    )
    request_timeout: float = Field(default=30.0, gt=0)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        # An unrecognised level must not stop the service from starting.
        value = value.strip().lower()
        return value if value in LOG_LEVEL_NAMES else "info"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()
