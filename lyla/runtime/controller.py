"""Send pipeline: submit a message, stream the reply, finalize it."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Callable, Optional, Sequence

from ..core.logger import session as log
from ..services.schemas import ChatMessage, Mood
from ..state.app_state import SessionState, SessionView
from .events import (
    ChunkReceived,
    Event,
    RecognitionEnded,
    RecognitionResult,
    StreamEnded,
    StreamEvent,
    StreamFailed,
)
from .voice import Notifier, SpeechRecognizer, VoiceInputAdapter

FAILURE_TEXT = "Oops! Something glitched. Wanna try again? 💁‍♀️"

ReplyStream = Callable[[Sequence[ChatMessage]], AsyncIterator[str]]
StateListener = Callable[[SessionView], None]
MessageHook = Callable[[ChatMessage], None]


class SessionController:
    """Single owner of transcript and pending reply mutations.

    Every transition runs synchronously on the event loop, so observers never
    see a half-applied change. Suspension happens only while waiting for the
    next chunk from the transport.
    """

    def __init__(
        self,
        state: SessionState,
        stream_reply: ReplyStream,
        *,
        recognizer: Optional[SpeechRecognizer] = None,
        notify: Optional[Notifier] = None,
        language: str = "en-US",
        on_message_send: Optional[MessageHook] = None,
    ) -> None:
        self.state = state
        self._stream_reply = stream_reply
        self._on_message_send = on_message_send
        self._listeners: list[StateListener] = []
        self.voice = VoiceInputAdapter(
            state,
            recognizer,
            dispatch=self.dispatch,
            submit=self.submit_voice,
            notify=notify,
            on_change=self._publish,
            language=language,
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def subscribe(self, listener: StateListener) -> None:
        """Register a callback receiving a snapshot after each transition."""
        self._listeners.append(listener)

    def snapshot(self) -> SessionView:
        return self.state.snapshot()

    def set_draft(self, text: str) -> None:
        if text == self.state.draft_input:
            return
        self.state.draft_input = text
        self._publish()

    def set_mood(self, mood: Mood) -> None:
        self.state.mood = Mood(mood)
        self._publish()

    async def submit_draft(self) -> bool:
        """Send the text currently in the input field."""
        return await self.submit(self.state.draft_input)

    async def submit_voice(self, text: str) -> bool:
        return await self.submit(text, source="voice")

    async def submit(self, text: str, *, source: str = "text") -> bool:
        """Run one exchange. Returns False when the submission is rejected.

        Whitespace-only input is ignored. While an exchange is in flight every
        new submission is rejected, whatever its source.
        """
        if not text or not text.strip():
            return False
        if self.state.busy:
            log.info("%s submission rejected: exchange in flight", source)
            return False

        message = ChatMessage.user(text)
        self.state.transcript.append(message)
        if source == "text":
            self.state.draft_input = ""
        self.state.busy = True
        # a typed send closes the microphone
        self.voice.stop()
        self._publish()
        log.info("exchange started (%s, %d messages)", source, len(self.state.transcript))

        if self._on_message_send is not None:
            try:
                self._on_message_send(message)
            except Exception:
                log.exception("on_message_send hook failed")

        await self._run_exchange(self.state.transcript.messages)
        return True

    async def dispatch(self, event: Event) -> None:
        """Deliver one event to the state machine."""
        if isinstance(event, (RecognitionResult, RecognitionEnded)):
            await self.voice.handle(event)
        else:
            self._apply(event)

    # ------------------------------------------------------------------ #
    # Exchange
    # ------------------------------------------------------------------ #
    async def _run_exchange(self, context: Sequence[ChatMessage]) -> None:
        try:
            async for chunk in self._stream_reply(context):
                self._apply(ChunkReceived(chunk))
        except asyncio.CancelledError as exc:
            self._apply(StreamFailed(exc))
            raise
        except Exception as exc:
            self._apply(StreamFailed(exc))
        else:
            self._apply(StreamEnded())

    def _apply(self, event: StreamEvent) -> None:
        if not self.state.busy:
            log.warning("%s ignored: no exchange in flight", type(event).__name__)
            return
        if isinstance(event, ChunkReceived):
            self.state.pending.append(event.text)
        elif isinstance(event, StreamEnded):
            log.info("exchange finished (%d chunks)", self.state.pending.chunk_count)
            self._finalize(self.state.pending.text)
        elif isinstance(event, StreamFailed):
            log.error("exchange failed: %r", event.error)
            self._finalize(FAILURE_TEXT)
        self._publish()

    def _finalize(self, content: str) -> None:
        try:
            self.state.transcript.append(ChatMessage.assistant(content))
            self.state.pending.reset()
        finally:
            self.state.busy = False
            self.state.mood = Mood.NEUTRAL

    def _publish(self) -> None:
        if not self._listeners:
            return
        view = self.state.snapshot()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                log.exception("state listener failed")
