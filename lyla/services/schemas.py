"""Data schemas exchanged with the assistant endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


class Mood(str, Enum):
    """Expressive tag of the assistant, used only for presentation."""

    NEUTRAL = "neutral"
    HAPPY = "happy"
    PLAYFUL = "playful"
    SASSY = "sassy"
    CARING = "caring"
    CONFIDENT = "confident"


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """Finalized conversation message."""

    role: Role
    content: str

    def to_payload(self) -> dict[str, str]:
        """Serialize the message for API calls."""
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ChatMessage":
        """Construct a ChatMessage from a role/content mapping."""
        return cls(role=Role(payload["role"]), content=str(payload.get("content") or ""))

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(Role.ASSISTANT, content)
