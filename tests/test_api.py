from __future__ import annotations

import httpx
import pytest

from lyla.config.settings import ServerSettings
from lyla.devserver import compose_reply, create_app, MessageIn
from lyla.runtime.controller import SessionController
from lyla.services.api import LylaAPI, LylaAPIError
from lyla.services.schemas import ChatMessage
from lyla.state.app_state import SessionState


def _api(app=None) -> LylaAPI:
    transport = httpx.ASGITransport(app=app or create_app())
    return LylaAPI(ServerSettings(base_url="http://test"), transport=transport)


@pytest.mark.asyncio
async def test_stream_reply_concatenates_to_full_reply() -> None:
    async with _api() as api:
        chunks = [chunk async for chunk in api.stream_reply([ChatMessage.user("hi")])]
    expected = compose_reply([MessageIn(role="user", content="hi")])
    assert "".join(chunks) == expected


@pytest.mark.asyncio
async def test_error_status_raises() -> None:
    async with _api() as api:
        with pytest.raises(LylaAPIError):
            async for _ in api.stream_reply([]):
                pass


@pytest.mark.asyncio
async def test_unknown_path_raises() -> None:
    settings = ServerSettings(base_url="http://test", chat_path="/api/missing")
    async with LylaAPI(settings, transport=httpx.ASGITransport(app=create_app())) as api:
        with pytest.raises(LylaAPIError):
            async for _ in api.stream_reply([ChatMessage.user("hi")]):
                pass


@pytest.mark.asyncio
async def test_controller_against_echo_endpoint() -> None:
    async with _api() as api:
        controller = SessionController(SessionState.create(), api.stream_reply)
        await controller.submit("hi")
        await controller.submit("again")

    messages = controller.state.transcript.messages
    assert len(messages) == 4
    assert messages[1].content == "You said: hi. That's message #1, and I'm here for it!"
    assert messages[3].content == "You said: again. That's message #2, and I'm here for it!"
    assert controller.state.busy is False


@pytest.mark.asyncio
async def test_unreachable_endpoint_takes_failure_path() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    api = LylaAPI(ServerSettings(base_url="http://test"), transport=httpx.MockTransport(refuse))
    controller = SessionController(SessionState.create(), api.stream_reply)
    await controller.submit("hi")
    await api.close()

    assert controller.state.transcript.last.content.startswith("Oops!")
    assert controller.state.busy is False
