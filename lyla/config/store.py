"""Persistence helpers for client settings."""

from __future__ import annotations

import json
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

from ..core.config import get_settings
from .paths import settings_path
from .settings import AppSettings, ServerSettings, SpeechSettings, UISettings, VoiceSettings


def _section(cls: type, payload: Any) -> Any:
    """Build a settings section, ignoring keys that are no longer known."""
    if not isinstance(payload, dict):
        return cls()
    known = {f.name for f in fields(cls)}
    return cls(**{key: value for key, value in payload.items() if key in known})


def load_settings(path: Path | None = None) -> AppSettings:
    """Load settings from disk (defaults when missing), then apply env overrides."""
    path = path or settings_path()
    if path.exists():
        raw_text = path.read_text(encoding="utf-8").lstrip("\ufeff")
        try:
            data = json.loads(raw_text) if raw_text.strip() else {}
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid settings file {path}: {exc}") from exc
        settings = AppSettings(
            server=_section(ServerSettings, data.get("server")),
            voice=_section(VoiceSettings, data.get("voice")),
            speech=_section(SpeechSettings, data.get("speech")),
            ui=_section(UISettings, data.get("ui")),
        )
    else:
        settings = AppSettings()

    override = get_settings().base_url
    if override:
        settings.server.base_url = override
    return settings


def save_settings(settings: AppSettings, path: Path | None = None) -> Path:
    """Persist settings as JSON and return the written path."""
    path = path or settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(settings), indent=2), encoding="utf-8")
    return path
