"""Append-only log of finalized messages."""

from __future__ import annotations

from typing import Iterable, Iterator

from ..services.schemas import ChatMessage, Role


class TranscriptStore:
    """Ordered sequence of finalized messages, never reordered or edited."""

    def __init__(self, initial: Iterable[ChatMessage] = ()) -> None:
        self._messages: list[ChatMessage] = []
        for message in initial:
            self.append(message)

    def append(self, message: ChatMessage) -> None:
        """Add a finalized message at the end of the log."""
        if not isinstance(message, ChatMessage):
            raise TypeError(f"expected ChatMessage, got {type(message).__name__}")
        if not isinstance(message.role, Role) or not isinstance(message.content, str):
            raise TypeError("message needs a role and text content")
        self._messages.append(message)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        """Immutable copy of the log."""
        return tuple(self._messages)

    @property
    def last(self) -> ChatMessage | None:
        return self._messages[-1] if self._messages else None

    def as_payload(self) -> list[dict[str, str]]:
        """Role/content pairs sent to the endpoint as context."""
        return [message.to_payload() for message in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(tuple(self._messages))
