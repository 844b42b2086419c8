"""Echo endpoint speaking the assistant protocol, for local development."""

from __future__ import annotations

import asyncio
import re
from typing import AsyncIterator, Literal

from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field


class MessageIn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: list[MessageIn] = Field(default_factory=list)


def compose_reply(messages: list[MessageIn]) -> str:
    """Canned reply quoting the latest user message."""
    last_user = next((m.content.strip() for m in reversed(messages) if m.role == "user"), "")
    if not last_user:
        return "Hey! Say something and I'll be right here."
    turns = sum(1 for m in messages if m.role == "user")
    return f"You said: {last_user}. That's message #{turns}, and I'm here for it!"


def split_chunks(text: str) -> list[str]:
    """Word-sized pieces whose concatenation is exactly ``text``."""
    return re.findall(r"\s*\S+\s*", text) or [text]


def create_app(chunk_delay: float = 0.0) -> FastAPI:
    app = FastAPI(title="LYLA echo")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/lyla")
    async def lyla(payload: ChatRequest) -> StreamingResponse:
        if not payload.messages:
            raise HTTPException(status_code=422, detail="messages must not be empty")
        reply = compose_reply(payload.messages)

        async def body() -> AsyncIterator[str]:
            for piece in split_chunks(reply):
                if chunk_delay:
                    await asyncio.sleep(chunk_delay)
                yield piece

        return StreamingResponse(body(), media_type="text/plain; charset=utf-8")

    return app


app = create_app()
