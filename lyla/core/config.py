"""Process-level configuration for the LYLA client."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_home() -> Path:
    return Path.home() / ".lyla"


class Settings(BaseSettings):
    """Environment driven settings (prefix ``LYLA_``)."""

    model_config = SettingsConfigDict(
        env_prefix="LYLA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Dossiers
    config_dir: Path = _default_home() / "config"
    log_dir: Path = _default_home() / "logs"

    # Logs
    log_level: str = "INFO"
    log_rotate_mb: int = 5
    log_retention_days: int = 7

    # Endpoint override (takes precedence over the stored client settings)
    base_url: str | None = None


@lru_cache()
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
