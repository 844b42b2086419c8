"""User-editable configuration models for the LYLA client."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class ServerSettings:
    """Connection settings for the assistant endpoint."""

    base_url: str = "http://127.0.0.1:3000"
    chat_path: str = "/api/lyla"
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    verify_ssl: bool = True


@dataclass(slots=True)
class VoiceSettings:
    """Speech recognition settings."""

    enabled: bool = True
    language: str = "en-US"
    asr_model_path: str | None = None
    asr_device: str = "cpu"
    asr_compute_type: str = "int8"
    input_device: str | None = None
    vad_aggressiveness: int = 2
    end_silence_ms: int = 800
    max_utterance_seconds: float = 15.0


@dataclass(slots=True)
class SpeechSettings:
    """Speech synthesis (read aloud) settings."""

    tts_model_path: str | None = None
    output_device: str | None = None
    length_scale: float = 1.0


@dataclass(slots=True)
class UISettings:
    """Window preferences."""

    title: str = "LYLA - Your Digital Ride or Die"
    placeholder: str = "Type to LYLA..."
    width: int = 720
    height: int = 640


@dataclass(slots=True)
class AppSettings:
    """Full set of settings for the client."""

    server: ServerSettings = field(default_factory=ServerSettings)
    voice: VoiceSettings = field(default_factory=VoiceSettings)
    speech: SpeechSettings = field(default_factory=SpeechSettings)
    ui: UISettings = field(default_factory=UISettings)
