"""Side effects over a finalized message: copy and read aloud."""

from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, Optional

from ..core.logger import output as log

TextSink = Callable[[str], None]


class OutputActions:
    """Best-effort actions; platform refusals are never surfaced."""

    def __init__(
        self,
        *,
        clipboard: Optional[TextSink] = None,
        speaker: Optional[TextSink] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        self._clipboard = clipboard
        self._speaker = speaker
        self._executor = executor
        self._owns_executor = False

    def copy_to_clipboard(self, text: str) -> None:
        if self._clipboard is None:
            return
        try:
            self._clipboard(text)
        except Exception as exc:
            log.debug("clipboard write refused: %r", exc)

    def read_aloud(self, text: str) -> Optional[Future]:
        """Start speaking ``text`` in the background; earlier speech is not cancelled."""
        if self._speaker is None or not text.strip():
            return None
        try:
            future = self._ensure_executor().submit(self._speaker, text)
        except RuntimeError as exc:
            log.debug("speech not scheduled: %r", exc)
            return None
        future.add_done_callback(self._log_failure)
        return future

    def shutdown(self) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
            self._owns_executor = False

    def _ensure_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="lyla-tts")
            self._owns_executor = True
        return self._executor

    @staticmethod
    def _log_failure(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            log.debug("speech synthesis failed: %r", exc)
