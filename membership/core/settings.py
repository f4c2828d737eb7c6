from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the membership core.

    This is separate from membership.db.config.Settings, which focuses on the database layer.
    """

    APP_NAME: str = Field(default="Membership Management")

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    LOG_LEVEL: str = Field(default="INFO", description="Root log level name")

    # Login throttling
    LOGIN_MAX_ATTEMPTS: int = Field(
        default=5, ge=1, description="Consecutive failures before an identity is locked out"
    )
    LOGIN_LOCKOUT_MINUTES: int = Field(
        default=15, ge=1, description="Duration of a lockout in minutes"
    )
    LOGIN_ATTEMPT_RETENTION_HOURS: int = Field(
        default=24,
        ge=1,
        description="Trackers idle for longer than this are dropped from the registry",
    )

    # Password setup links
    PASSWORD_SETUP_TOKEN_HOURS: int = Field(default=72, ge=1)

    # Bulk processing
    DEFAULT_CHUNK_SIZE: int = Field(default=100, ge=1)

    # Automatically load from .env at runtime.
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, v):
        """
        Accept level names in any case; unknown names fall back to INFO.
        """
        if v is None:
            return "INFO"
        name = str(v).strip().upper()
        if name not in logging.getLevelNamesMapping():
            return "INFO"
        return name

    @property
    def log_level(self) -> int:
        return logging.getLevelNamesMapping()[self.LOG_LEVEL]


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from environment variables.

    Note:
      For simplicity we construct a new instance each time. If caching is desired,
      we can add a module-level cache or lru_cache.
    """
    return AppSettings()
