from __future__ import annotations

import asyncio
import os
import tempfile
from typing import Callable, Iterable

import pytest

# Loggers and config paths are resolved on import: keep them out of $HOME.
os.environ.setdefault("LYLA_LOG_DIR", tempfile.mkdtemp(prefix="lyla-logs-"))
os.environ.setdefault("LYLA_CONFIG_DIR", tempfile.mkdtemp(prefix="lyla-config-"))

from lyla.core.config import get_settings  # noqa: E402
from lyla.services.schemas import ChatMessage  # noqa: E402


class ScriptedReply:
    """Stand-in for the assistant endpoint.

    Yields ``chunks`` in order, optionally pauses after ``hold_after`` chunks
    until ``release()`` is called, then raises ``error`` if one is set.
    """

    def __init__(
        self,
        chunks: Iterable[str] = (),
        *,
        error: BaseException | None = None,
        hold_after: int | None = None,
    ) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.hold_after = hold_after
        self.requests: list[list[ChatMessage]] = []
        self._gate = asyncio.Event()
        self.holding = asyncio.Event()

    def release(self) -> None:
        self._gate.set()

    async def __call__(self, messages):
        self.requests.append(list(messages))
        for index, chunk in enumerate(self.chunks):
            if self.hold_after is not None and index == self.hold_after:
                self.holding.set()
                await self._gate.wait()
            yield chunk
        if self.hold_after is not None and self.hold_after >= len(self.chunks):
            self.holding.set()
            await self._gate.wait()
        if self.error is not None:
            raise self.error


@pytest.fixture
def scripted() -> type[ScriptedReply]:
    return ScriptedReply


@pytest.fixture
def eventually() -> Callable:
    async def _wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.005)

    return _wait


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("LYLA_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.delenv("LYLA_BASE_URL", raising=False)
    get_settings.cache_clear()
    yield tmp_path / "config"
    get_settings.cache_clear()
