"""Voice input adapter: one spoken utterance becomes one message."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from ..core.logger import voice as log
from ..state.app_state import SessionState
from .events import Event, RecognitionEnded, RecognitionEvent, RecognitionResult

UNSUPPORTED_NOTICE = "Speech recognition not supported"

RecognitionSink = Callable[[RecognitionEvent], None]
Notifier = Callable[[str], None]


class SpeechRecognizer(Protocol):
    """Platform speech-to-text capability."""

    def available(self) -> bool: ...

    def start(self, language: str, emit: RecognitionSink) -> None:
        """Open a single-utterance session; ``emit`` may be called from any thread."""
        ...

    def stop(self) -> None: ...


class VoiceStatus(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    CANCELLED = "cancelled"


class VoiceInputAdapter:
    """Bridge between a recognizer and the send pipeline.

    Results are honoured only while listening and only once per recognition
    session; anything arriving for an older session is dropped.
    """

    def __init__(
        self,
        state: SessionState,
        recognizer: Optional[SpeechRecognizer],
        *,
        dispatch: Callable[[Event], Awaitable[None]],
        submit: Callable[[str], Awaitable[bool]],
        notify: Optional[Notifier] = None,
        on_change: Optional[Callable[[], None]] = None,
        language: str = "en-US",
    ) -> None:
        self.state = state
        self.recognizer = recognizer
        self.language = language
        self.status = VoiceStatus.IDLE
        self._dispatch = dispatch
        self._submit = submit
        self._notify = notify
        self._on_change = on_change
        self._session = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def start(self) -> bool:
        """Open a recognition session; must run on the event loop thread."""
        if self.recognizer is None or not self.recognizer.available():
            log.info("recognition capability unavailable")
            if self._notify:
                self._notify(UNSUPPORTED_NOTICE)
            return False
        if self.status is VoiceStatus.LISTENING:
            log.info("start ignored: session %d already listening", self._session)
            return False
        if self.state.busy:
            log.info("start ignored: exchange in flight")
            return False

        self._loop = asyncio.get_running_loop()
        self._session += 1
        self.status = VoiceStatus.LISTENING
        self.state.listening = True
        self._changed()
        try:
            self.recognizer.start(self.language, self._make_sink(self._session))
        except Exception:
            log.exception("recognizer failed to start")
            self._to_idle()
            return False
        log.info("session %d listening (%s)", self._session, self.language)
        return True

    def stop(self) -> None:
        """Cancel the open session; late results are ignored."""
        if self.status is not VoiceStatus.LISTENING:
            return
        self.status = VoiceStatus.CANCELLED
        log.info("session %d cancelled", self._session)
        self._session += 1
        self._stop_recognizer()
        self._to_idle()

    def toggle(self) -> bool:
        """Start when idle, stop when listening. Returns the new listening flag."""
        if self.status is VoiceStatus.LISTENING:
            self.stop()
            return False
        return self.start()

    async def handle(self, event: RecognitionEvent) -> None:
        """Apply a recognition event to the adapter state."""
        if isinstance(event, RecognitionResult):
            if self.status is not VoiceStatus.LISTENING:
                log.info("result dropped: not listening")
                return
            self._stop_recognizer()
            self._to_idle()
            accepted = await self._submit(event.transcript)
            if not accepted:
                log.info("voice submission rejected: %r", event.transcript)
        elif isinstance(event, RecognitionEnded):
            if self.status is not VoiceStatus.LISTENING:
                return
            if event.reason:
                log.info("session %d ended: %s", self._session, event.reason)
            self._to_idle()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _make_sink(self, session: int) -> RecognitionSink:
        loop = self._loop
        assert loop is not None

        def sink(event: RecognitionEvent) -> None:
            loop.call_soon_threadsafe(self._deliver, session, event)

        return sink

    def _deliver(self, session: int, event: RecognitionEvent) -> None:
        if session != self._session:
            log.debug("stale event from session %d dropped", session)
            return
        task = asyncio.ensure_future(self._dispatch(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _stop_recognizer(self) -> None:
        if self.recognizer is None:
            return
        try:
            self.recognizer.stop()
        except Exception:
            log.exception("recognizer failed to stop")

    def _to_idle(self) -> None:
        self.status = VoiceStatus.IDLE
        self.state.listening = False
        self._changed()

    def _changed(self) -> None:
        if self._on_change:
            self._on_change()
