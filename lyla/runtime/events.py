"""Discrete events delivered to the session controller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class ChunkReceived:
    """A piece of the assistant reply arrived from the transport."""

    text: str


@dataclass(frozen=True, slots=True)
class StreamEnded:
    """The transport signalled end of stream."""


@dataclass(frozen=True, slots=True)
class StreamFailed:
    """The request could not be opened or the stream broke."""

    error: BaseException


@dataclass(frozen=True, slots=True)
class RecognitionResult:
    """The recognizer produced the transcript of one utterance."""

    transcript: str


@dataclass(frozen=True, slots=True)
class RecognitionEnded:
    """The recognition session closed without (further) results."""

    reason: str | None = None


StreamEvent = Union[ChunkReceived, StreamEnded, StreamFailed]
RecognitionEvent = Union[RecognitionResult, RecognitionEnded]
Event = Union[StreamEvent, RecognitionEvent]
