"""Runtime configuration for SurfApp using Pydantic Settings.

Values load from ``SURFAPP_*`` environment variables (or a ``.env`` file) so
the same code runs against the public Open-Meteo endpoints or a local
stand-in.  ``PORT`` and ``SECRET_KEY`` are also read without the prefix, the
way most hosting platforms provide them.

Example:
    >>> from config import get_settings
    >>> get_settings().debounce_seconds
    0.3
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOGGER = logging.getLogger(__name__)


class Settings(BaseSettings):
    """All SurfApp settings.  Invalid values raise ValidationError."""

    model_config = SettingsConfigDict(
        env_prefix="SURFAPP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Upstream Open-Meteo endpoints (free, no API key)
    geocoding_url: str = Field(
        default="https://geocoding-api.open-meteo.com/v1/search",
        description="Open-Meteo geocoding search endpoint",
    )
    forecast_url: str = Field(
        default="https://api.open-meteo.com/v1/forecast",
        description="Open-Meteo weather forecast endpoint",
    )
    marine_url: str = Field(
        default="https://marine-api.open-meteo.com/v1/marine",
        description="Open-Meteo marine endpoint",
    )
    http_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for an upstream response",
    )
    max_results: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Candidates requested from the geocoder",
    )

    # Interaction
    debounce_ms: int = Field(
        default=300,
        ge=0,
        description="Quiet period after the last keystroke before searching",
    )
    discard_stale: bool = Field(
        default=False,
        description="Drop search, weather and marine responses from superseded requests",
    )
    max_sessions: int = Field(
        default=200,
        ge=1,
        description="Open pages kept in memory; the oldest are dropped first",
    )

    # Server
    log_level: str = Field(default="INFO", description="Root logging level")
    secret_key: str = Field(
        default="replace_this_with_a_secure_key",
        validation_alias=AliasChoices("SURFAPP_SECRET_KEY", "SECRET_KEY"),
        description="Flask secret key",
    )
    port: int = Field(
        default=5757,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("SURFAPP_PORT", "PORT"),
        description="Port the development server listens on",
    )

    @field_validator("geocoding_url", "forecast_url", "marine_url")
    @classmethod
    def validate_endpoint_url(cls, v: str) -> str:
        """Ensure endpoints start with http:// or https://."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Endpoint must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


_settings: Optional[Settings] = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get or create the Settings singleton (thread-safe).

    Raises:
        ValidationError: If an environment value fails validation.
    """
    global _settings

    if _settings is not None:
        return _settings

    with _settings_lock:
        if _settings is None:
            try:
                _settings = Settings()
            except ValidationError as e:
                LOGGER.error("Configuration validation failed: %s", e)
                raise
    return _settings


__all__ = ["Settings", "get_settings"]
