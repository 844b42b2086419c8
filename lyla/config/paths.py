"""Filesystem helpers for the client."""

from __future__ import annotations

from pathlib import Path

from ..core.config import get_settings


def config_dir() -> Path:
    """Directory storing local configuration."""
    root = Path(get_settings().config_dir)
    root.mkdir(parents=True, exist_ok=True)
    return root


def settings_path() -> Path:
    """Path of the persisted client settings."""
    return config_dir() / "lyla_settings.json"
