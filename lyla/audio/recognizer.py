"""Single-utterance speech recognition: microphone, VAD endpointing, faster-whisper."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import sounddevice as sd
import webrtcvad
from faster_whisper import WhisperModel

from ..config.settings import VoiceSettings
from ..core.logger import voice as log
from ..runtime.events import RecognitionEnded, RecognitionEvent, RecognitionResult

_BYTES_PER_SAMPLE = 2  # pcm_s16le


@dataclass(slots=True)
class RecognizerConfig:
    """Capture and transcription parameters."""

    model_path: Path
    device: str = "cpu"
    compute_type: str = "int8"
    input_device: str | None = None
    sample_rate: int = 16_000
    frame_duration_ms: int = 30
    vad_aggressiveness: int = 2
    end_silence_ms: int = 800
    max_utterance_seconds: float = 15.0

    @classmethod
    def from_settings(cls, settings: VoiceSettings) -> Optional["RecognizerConfig"]:
        if not settings.asr_model_path:
            return None
        return cls(
            model_path=Path(settings.asr_model_path),
            device=settings.asr_device,
            compute_type=settings.asr_compute_type,
            input_device=settings.input_device,
            vad_aggressiveness=max(0, min(3, settings.vad_aggressiveness)),
            end_silence_ms=settings.end_silence_ms,
            max_utterance_seconds=settings.max_utterance_seconds,
        )


class UtteranceEndpointer:
    """Collect frames until trailing silence closes the utterance."""

    def __init__(self, config: RecognizerConfig) -> None:
        self.config = config
        self._vad = webrtcvad.Vad(config.vad_aggressiveness)
        self._frames: list[bytes] = []
        self._silence_ms = 0
        self._elapsed_ms = 0
        self.heard_speech = False

    def feed(self, frame: bytes) -> bool:
        """Add a frame; return True once the utterance is complete."""
        step = self.config.frame_duration_ms
        self._elapsed_ms += step
        speech = self._vad.is_speech(frame, self.config.sample_rate)
        if speech:
            self.heard_speech = True
            self._silence_ms = 0
        elif self.heard_speech:
            self._silence_ms += step
        if self.heard_speech:
            self._frames.append(frame)
        if self._elapsed_ms >= self.config.max_utterance_seconds * 1000:
            return True
        return self.heard_speech and self._silence_ms >= self.config.end_silence_ms

    @property
    def audio(self) -> bytes:
        return b"".join(self._frames) if self.heard_speech else b""


class WhisperRecognizer:
    """Speech recognizer honouring the one-utterance, one-result contract."""

    def __init__(self, config: RecognizerConfig) -> None:
        self.config = config
        self._model: WhisperModel | None = None
        self._model_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def available(self) -> bool:
        if not self.config.model_path.exists():
            return False
        try:
            devices = sd.query_devices()
        except Exception as exc:  # PortAudio missing or broken
            log.info("audio devices unavailable: %r", exc)
            return False
        return any(int(device.get("max_input_channels", 0)) > 0 for device in devices)

    def start(self, language: str, emit: Callable[[RecognitionEvent], None]) -> None:
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._listen,
            args=(language, emit, self._stop),
            name="lyla-asr",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _listen(self, language: str, emit: Callable[[RecognitionEvent], None], stop: threading.Event) -> None:
        try:
            audio = self._record(stop)
            if stop.is_set():
                emit(RecognitionEnded("cancelled"))
                return
            if not audio:
                emit(RecognitionEnded("no speech"))
                return
            text = self._transcribe(audio, language)
            if text:
                emit(RecognitionResult(text))
            emit(RecognitionEnded(None if text else "empty transcript"))
        except Exception as exc:
            log.exception("recognition failed")
            emit(RecognitionEnded(repr(exc)))

    def _record(self, stop: threading.Event) -> bytes:
        frame_size = int(self.config.sample_rate * self.config.frame_duration_ms / 1000)
        endpointer = UtteranceEndpointer(self.config)
        with sd.RawInputStream(
            samplerate=self.config.sample_rate,
            channels=1,
            dtype="int16",
            blocksize=frame_size,
            device=self.config.input_device,
        ) as stream:
            while not stop.is_set():
                data, overflowed = stream.read(frame_size)
                if overflowed:  # pragma: no cover
                    log.warning("microphone overflow")
                if endpointer.feed(bytes(data)):
                    break
        return endpointer.audio

    def _transcribe(self, audio: bytes, language: str) -> str:
        samples = np.frombuffer(audio, dtype=np.int16).astype(np.float32) / 32768.0
        segments, _ = self._ensure_model().transcribe(samples, language=whisper_language(language))
        return " ".join(segment.text.strip() for segment in segments).strip()

    def _ensure_model(self) -> WhisperModel:
        with self._model_lock:
            if self._model is None:
                self._model = WhisperModel(
                    str(self.config.model_path),
                    device=self.config.device,
                    compute_type=self.config.compute_type,
                )
            return self._model


def whisper_language(locale: str) -> str:
    """Map a locale such as ``en-US`` to the language code whisper expects."""
    return locale.replace("_", "-").split("-")[0].lower() or "en"


def build_recognizer(settings: VoiceSettings) -> WhisperRecognizer | None:
    """Return the recognizer described by the settings, or None when disabled."""
    if not settings.enabled:
        return None
    config = RecognizerConfig.from_settings(settings)
    if config is None:
        return None
    return WhisperRecognizer(config)
