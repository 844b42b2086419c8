import asyncio

import pytest

from lyla.runtime.controller import FAILURE_TEXT, SessionController
from lyla.runtime.events import ChunkReceived, StreamEnded
from lyla.services.schemas import ChatMessage, Mood, Role
from lyla.state.app_state import SessionState, SessionView


def _controller(reply, **kwargs) -> SessionController:
    return SessionController(SessionState.create(), reply, **kwargs)


@pytest.mark.asyncio
async def test_streamed_reply_is_finalized(scripted) -> None:
    controller = _controller(scripted(["He", "llo", "!"]))
    assert await controller.submit("hi") is True

    state = controller.state
    assert state.transcript.messages == (ChatMessage.user("hi"), ChatMessage.assistant("Hello!"))
    assert state.busy is False
    assert state.pending.text == ""


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\n\t "])
async def test_blank_submission_is_ignored(scripted, text: str) -> None:
    reply = scripted(["never"])
    controller = _controller(reply)
    assert await controller.submit(text) is False
    assert len(controller.state.transcript) == 0
    assert controller.state.busy is False
    assert reply.requests == []


@pytest.mark.asyncio
async def test_failure_before_any_chunk(scripted) -> None:
    controller = _controller(scripted([], error=ConnectionError("offline")))
    await controller.submit("hi")

    assert controller.state.transcript.messages == (
        ChatMessage.user("hi"),
        ChatMessage.assistant(FAILURE_TEXT),
    )
    assert controller.state.busy is False
    assert controller.state.pending.text == ""


@pytest.mark.asyncio
async def test_failure_mid_stream_discards_partial_text(scripted) -> None:
    controller = _controller(scripted(["Hel", "lo"], error=RuntimeError("reset by peer")))
    await controller.submit("hi")

    assert controller.state.transcript.last == ChatMessage.assistant(FAILURE_TEXT)
    assert len(controller.state.transcript) == 2
    assert controller.state.pending.text == ""


@pytest.mark.asyncio
async def test_failure_then_retry_is_accepted(scripted) -> None:
    failing = scripted([], error=OSError("boom"))
    working = scripted(["ok"])
    replies = iter([failing, working])

    async def reply(messages):
        async for chunk in next(replies)(messages):
            yield chunk

    controller = _controller(reply)
    await controller.submit("first")
    assert await controller.submit("second") is True
    assert [m.content for m in controller.state.transcript] == ["first", FAILURE_TEXT, "second", "ok"]


@pytest.mark.asyncio
async def test_exchanges_alternate_roles(scripted) -> None:
    controller = _controller(scripted(["a", "b"]))
    texts = ["one", "two", "three", "four"]
    for text in texts:
        await controller.submit(text)

    messages = controller.state.transcript.messages
    assert len(messages) == 2 * len(texts)
    assert [m.role for m in messages] == [Role.USER, Role.ASSISTANT] * len(texts)
    assert [m.content for m in messages[::2]] == texts
    assert all(m.content == "ab" for m in messages[1::2])


@pytest.mark.asyncio
async def test_request_carries_full_transcript(scripted) -> None:
    reply = scripted(["reply"])
    controller = _controller(reply)
    await controller.submit("one")
    await controller.submit("two")

    assert reply.requests[0] == [ChatMessage.user("one")]
    assert reply.requests[1] == [
        ChatMessage.user("one"),
        ChatMessage.assistant("reply"),
        ChatMessage.user("two"),
    ]


@pytest.mark.asyncio
async def test_submission_rejected_while_busy(scripted) -> None:
    reply = scripted(["Hel", "lo"], hold_after=1)
    controller = _controller(reply)
    first = asyncio.create_task(controller.submit("first"))
    await reply.holding.wait()

    assert controller.state.busy is True
    assert controller.state.pending.text == "Hel"
    assert await controller.submit("second") is False
    assert await controller.submit_voice("spoken") is False
    assert [m.content for m in controller.state.transcript] == ["first"]

    reply.release()
    assert await first is True
    assert [m.content for m in controller.state.transcript] == ["first", "Hello"]
    assert controller.state.busy is False
    assert await controller.submit("third") is True


@pytest.mark.asyncio
async def test_text_submission_clears_draft(scripted) -> None:
    controller = _controller(scripted(["ok"]))
    controller.set_draft("hello there")
    assert await controller.submit_draft() is True
    assert controller.state.draft_input == ""
    assert controller.state.transcript.messages[0] == ChatMessage.user("hello there")


@pytest.mark.asyncio
async def test_voice_submission_leaves_draft_alone(scripted) -> None:
    controller = _controller(scripted(["ok"]))
    controller.set_draft("half typed")
    await controller.submit_voice("hello there")
    assert controller.state.draft_input == "half typed"


@pytest.mark.asyncio
async def test_voice_and_typed_submissions_match(scripted) -> None:
    typed = _controller(scripted(["Hi", "!"]))
    spoken = _controller(scripted(["Hi", "!"]))
    await typed.submit("hello there")
    await spoken.submit_voice("hello there")
    assert typed.state.transcript.messages == spoken.state.transcript.messages


@pytest.mark.asyncio
async def test_observers_see_each_partial(scripted) -> None:
    views: list[SessionView] = []
    controller = _controller(scripted(["He", "llo", "!"]))
    controller.subscribe(views.append)
    await controller.submit("hi")

    pending = [view.pending for view in views]
    assert pending == ["", "He", "Hello", "Hello!", ""]
    assert views[0].busy is True and views[-1].busy is False
    # finalization is a move: never both pending and in the transcript
    for view in views:
        if view.pending:
            assert view.transcript[-1].role is Role.USER


@pytest.mark.asyncio
async def test_mood_resets_when_reply_finalizes(scripted) -> None:
    reply = scripted(["x"], hold_after=1)
    controller = _controller(reply)
    task = asyncio.create_task(controller.submit("hi"))
    await reply.holding.wait()
    controller.set_mood(Mood.SASSY)
    assert controller.state.mood is Mood.SASSY
    reply.release()
    await task
    assert controller.state.mood is Mood.NEUTRAL


@pytest.mark.asyncio
async def test_mood_resets_on_failure(scripted) -> None:
    controller = _controller(scripted([], error=ValueError("bad")))
    controller.set_mood("happy")
    await controller.submit("hi")
    assert controller.state.mood is Mood.NEUTRAL


@pytest.mark.asyncio
async def test_message_hook_receives_user_message(scripted) -> None:
    sent: list[ChatMessage] = []
    controller = _controller(scripted(["ok"]), on_message_send=sent.append)
    await controller.submit("hi")
    assert sent == [ChatMessage.user("hi")]


@pytest.mark.asyncio
async def test_failing_hook_does_not_block_exchange(scripted) -> None:
    def hook(_: ChatMessage) -> None:
        raise RuntimeError("analytics down")

    controller = _controller(scripted(["ok"]), on_message_send=hook)
    await controller.submit("hi")
    assert controller.state.transcript.last == ChatMessage.assistant("ok")


@pytest.mark.asyncio
async def test_stream_events_without_exchange_are_ignored(scripted) -> None:
    controller = _controller(scripted())
    await controller.dispatch(ChunkReceived("stray"))
    await controller.dispatch(StreamEnded())
    assert len(controller.state.transcript) == 0
    assert controller.state.pending.text == ""


@pytest.mark.asyncio
async def test_cancelled_exchange_returns_to_idle(scripted) -> None:
    reply = scripted(["a"], hold_after=1)
    controller = _controller(reply)
    task = asyncio.create_task(controller.submit("hi"))
    await reply.holding.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert controller.state.busy is False
    assert controller.state.pending.text == ""
    assert controller.state.transcript.last == ChatMessage.assistant(FAILURE_TEXT)


@pytest.mark.asyncio
async def test_empty_reply_still_finalizes(scripted) -> None:
    controller = _controller(scripted([]))
    await controller.submit("hi")
    assert controller.state.transcript.last == ChatMessage.assistant("")
    assert controller.state.busy is False


@pytest.mark.asyncio
@pytest.mark.parametrize("fails_on", ["", "Hello"])
async def test_failing_pending_listener_leaves_session_idle(scripted, fails_on: str) -> None:
    controller = _controller(scripted(["Hello"]))

    def render(text: str) -> None:
        if text == fails_on:
            raise RuntimeError("render failed")

    controller.state.pending.subscribe(render)
    assert await controller.submit("hi") is True

    assert controller.state.busy is False
    assert controller.state.pending.text == ""
    assert [m.content for m in controller.state.transcript] == ["hi", "Hello"]
    assert await controller.submit("again") is True
