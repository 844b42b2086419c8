"""Read-aloud support using Piper voices."""

from __future__ import annotations

import re
import threading
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import sounddevice as sd
from piper import PiperVoice, SynthesisConfig

from ..config.settings import SpeechSettings


@dataclass(slots=True)
class SpeakerConfig:
    """Piper model configuration."""

    model_path: Path
    config_path: Path
    output_device: str | None = None
    length_scale: float = 1.0

    @classmethod
    def from_settings(cls, settings: SpeechSettings) -> Optional["SpeakerConfig"]:
        if not settings.tts_model_path:
            return None
        model = Path(settings.tts_model_path)
        return cls(
            model_path=model,
            config_path=model.with_name(model.name + ".json"),
            output_device=settings.output_device,
            length_scale=settings.length_scale,
        )


class PiperSpeaker:
    """Synthesize text and play it on the output device (blocking, run in a worker)."""

    def __init__(self, config: SpeakerConfig) -> None:
        self.config = config
        self._voice: PiperVoice | None = None
        self._lock = threading.Lock()

    def available(self) -> bool:
        return self.config.model_path.exists() and self.config.config_path.exists()

    def __call__(self, text: str) -> None:
        self.speak(text)

    def speak(self, text: str) -> None:
        text = sanitize_speech_text(text)
        if not text:
            return
        voice = self._ensure_voice()
        syn_config = SynthesisConfig(length_scale=self.config.length_scale) if self.config.length_scale != 1.0 else None
        stream: sd.RawOutputStream | None = None
        try:
            for chunk in voice.synthesize(text, syn_config=syn_config):
                if stream is None:
                    stream = sd.RawOutputStream(
                        samplerate=chunk.sample_rate,
                        channels=chunk.sample_channels or 1,
                        dtype="int16",
                        device=self.config.output_device,
                    )
                    stream.start()
                stream.write(chunk.audio_int16_bytes)
        finally:
            if stream is not None:
                stream.stop()
                stream.close()

    def _ensure_voice(self) -> PiperVoice:
        with self._lock:
            if self._voice is None:
                if not self.available():
                    raise FileNotFoundError(f"Piper model not found: {self.config.model_path}")
                self._voice = PiperVoice.load(str(self.config.model_path), str(self.config.config_path))
            return self._voice


def sanitize_speech_text(text: str) -> str:
    """Drop emoji and markup characters the voice would spell out."""
    cleaned = "".join(ch for ch in text if unicodedata.category(ch) not in ("So", "Sk", "Cs", "Cf"))
    cleaned = cleaned.replace("\ufe0f", "").replace("\ufe0e", "")
    cleaned = re.sub(r"[*_`#<>]", " ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned)
    return cleaned.strip()


def build_speaker(settings: SpeechSettings) -> PiperSpeaker | None:
    config = SpeakerConfig.from_settings(settings)
    if config is None:
        return None
    return PiperSpeaker(config)
