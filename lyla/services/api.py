"""HTTP client used to talk to the assistant endpoint."""

from __future__ import annotations

from typing import AsyncIterator, Sequence

import httpx

from ..config.settings import ServerSettings
from ..core.logger import transport as log
from .schemas import ChatMessage


class LylaAPIError(RuntimeError):
    """The endpoint answered with an unusable response."""


class LylaAPI:
    """Async client streaming replies from the assistant endpoint."""

    def __init__(
        self,
        settings: ServerSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        timeout = httpx.Timeout(
            connect=settings.connect_timeout,
            read=settings.read_timeout,
            write=settings.connect_timeout,
            pool=None,
        )
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            verify=settings.verify_ssl,
            timeout=timeout,
            transport=transport,
        )

    async def stream_reply(self, messages: Sequence[ChatMessage]) -> AsyncIterator[str]:
        """Send the conversation and yield the reply text chunk by chunk.

        The body is raw text; chunk boundaries carry no meaning, only their
        concatenation does. Errors propagate to the caller.
        """
        payload = {"messages": [message.to_payload() for message in messages]}
        log.info("POST %s (%d messages)", self.settings.chat_path, len(messages))
        async with self._client.stream(
            "POST",
            self.settings.chat_path,
            json=payload,
            headers={"Accept": "text/plain"},
        ) as response:
            if response.status_code >= 400:
                body = (await response.aread()).decode("utf-8", errors="replace")
                raise LylaAPIError(f"HTTP {response.status_code} from {self.settings.chat_path}: {body[:200]}")
            received = 0
            async for chunk in response.aiter_text():
                if not chunk:
                    continue
                received += len(chunk)
                yield chunk
            log.info("stream closed after %d characters", received)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "LylaAPI":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
