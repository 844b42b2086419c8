"""Session state owned by one conversation view."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ..services.schemas import ChatMessage, Mood
from .accumulator import StreamingAccumulator
from .transcript import TranscriptStore


@dataclass(frozen=True, slots=True)
class SessionView:
    """Immutable snapshot handed to the rendering surface."""

    transcript: tuple[ChatMessage, ...]
    pending: str
    busy: bool
    draft_input: str
    listening: bool
    mood: Mood


@dataclass(slots=True)
class SessionState:
    """Live state of a conversation.

    Created empty and idle; lives until the conversation view is torn down.
    Only the session controller mutates ``transcript`` and ``pending``.
    """

    transcript: TranscriptStore = field(default_factory=TranscriptStore)
    pending: StreamingAccumulator = field(default_factory=StreamingAccumulator)
    busy: bool = False
    draft_input: str = ""
    listening: bool = False
    mood: Mood = Mood.NEUTRAL

    @classmethod
    def create(cls, initial_messages: Iterable[ChatMessage] = ()) -> "SessionState":
        """Build a fresh idle session, optionally seeded with earlier messages."""
        return cls(transcript=TranscriptStore(initial_messages))

    def snapshot(self) -> SessionView:
        return SessionView(
            transcript=self.transcript.messages,
            pending=self.pending.text,
            busy=self.busy,
            draft_input=self.draft_input,
            listening=self.listening,
            mood=self.mood,
        )
