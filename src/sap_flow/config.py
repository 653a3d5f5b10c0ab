"""Application settings loaded from the environment (``SAP_FLOW_*``) or ``.env``."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the engine, CLI and flows."""

    model_config = SettingsConfigDict(
        env_prefix="SAP_FLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "sap-flow"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Default location (Burlington, VT)
    lat: float = Field(default=44.48, ge=-90, le=90)
    lon: float = Field(default=-73.21, ge=-180, le=180)

    data_dir: Path = Path("data")

    # Upstream windows
    forecast_past_days: int = 30
    forecast_days: int = 7
    archive_cutoff_days: int = 30
    archive_retry_delay: float = 2.5

    # Cache lifetimes
    correlation_cache_ttl: float = 90.0
    historical_max_age_hours: float = 24.0
    current_max_age_hours: float = 1.0


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
