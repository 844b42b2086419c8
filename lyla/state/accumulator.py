"""Holder for the assistant reply while it streams in."""

from __future__ import annotations

from typing import Callable

from ..core.logger import session as log

PendingListener = Callable[[str], None]


class StreamingAccumulator:
    """Concatenates chunks in arrival order and republishes the running total."""

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._text = ""
        self._listeners: list[PendingListener] = []

    def subscribe(self, listener: PendingListener) -> None:
        """Register a callback receiving the pending text after every change."""
        self._listeners.append(listener)

    def append(self, chunk: str) -> str:
        """Add a chunk at the end of the pending text and publish the total."""
        self._parts.append(chunk)
        self._text += chunk
        self._publish()
        return self._text

    def reset(self) -> None:
        """Clear the pending text."""
        self._parts.clear()
        self._text = ""
        self._publish()

    @property
    def text(self) -> str:
        return self._text

    @property
    def chunk_count(self) -> int:
        return len(self._parts)

    def __bool__(self) -> bool:
        return bool(self._text)

    def _publish(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._text)
            except Exception:
                log.exception("pending listener failed")
