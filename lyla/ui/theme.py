"""Presentation mappings that do not depend on Qt."""

from __future__ import annotations

from ..services.schemas import Mood

MOOD_COLORS: dict[Mood, str] = {
    Mood.PLAYFUL: "#ec4899",
    Mood.SASSY: "#9333ea",
    Mood.CARING: "#fb7185",
    Mood.CONFIDENT: "#4338ca",
    Mood.HAPPY: "#10b981",
    Mood.NEUTRAL: "#374151",
}
FALLBACK_COLOR = "#1f2937"

USER_BUBBLE = "#2563eb"
ASSISTANT_BUBBLE = "rgba(192, 132, 252, 0.3)"
LISTENING_COLOR = "#dc2626"
IDLE_MIC_COLOR = "#22c55e"


def mood_color(mood: Mood | str) -> str:
    """Background colour for a mood; unknown moods fall back to dark grey."""
    try:
        return MOOD_COLORS[Mood(mood)]
    except ValueError:
        return FALLBACK_COLOR


def can_send(draft: str, busy: bool) -> bool:
    """Whether the send control is enabled."""
    return not busy and bool(draft.strip())


def can_listen(busy: bool, listening: bool) -> bool:
    """The mic control stays usable to stop a session, but cannot open one mid-exchange."""
    return listening or not busy


def mic_color(listening: bool) -> str:
    return LISTENING_COLOR if listening else IDLE_MIC_COLOR
