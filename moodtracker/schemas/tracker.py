"""
Tracker request / response schemas.

Snapshot:  GET  /tracker/state                  → SnapshotResponse
Intents:   POST /tracker/intents/save-mood      → SaveMoodRequest → IntentAccepted
           POST /tracker/intents/load-entries   → IntentAccepted
Notices:   GET  /tracker/notices                → NoticesResponse
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from moodtracker.core.errors import MOOD_MAX, MOOD_MIN, MoodTrackerException
from moodtracker.services.entry_store import MoodEntry
from moodtracker.services.intents import MOOD_CHOICES, StateSnapshot
from moodtracker.services.tracker import ControllerPhase


class MoodEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    mood: int
    timestamp: int = Field(description="Milliseconds since epoch.")
    recorded_at: str = Field(description="Timestamp as ISO-8601 UTC, for display.")


class SnapshotResponse(BaseModel):
    """The sole render contract: draw exactly this."""
    entries: list[MoodEntryOut] = Field(description="Most recent first.")
    is_loading: bool
    phase: ControllerPhase
    choices: list[int] = Field(description="Mood values the renderer offers as buttons.")


class SaveMoodRequest(BaseModel):
    mood: Annotated[int, Field(
        ge=MOOD_MIN,
        le=MOOD_MAX,
        strict=True,
        description=f"Mood value, {MOOD_MIN} (worst) to {MOOD_MAX} (best).",
        examples=[3],
    )]


class IntentAccepted(BaseModel):
    accepted: bool = True
    intent: str


class NoticeOut(BaseModel):
    code: str
    message: str


class NoticesResponse(BaseModel):
    total: int
    items: list[NoticeOut] = Field(description="Oldest first.")


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _recorded_at(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat()


def entry_out(e: MoodEntry) -> MoodEntryOut:
    return MoodEntryOut(
        id=e.id,
        mood=e.mood,
        timestamp=e.timestamp,
        recorded_at=_recorded_at(e.timestamp),
    )


def snapshot_out(s: StateSnapshot) -> SnapshotResponse:
    # Phase comes from the snapshot itself so a frame is never half stale.
    phase = ControllerPhase.refreshing if s.is_loading else ControllerPhase.idle
    return SnapshotResponse(
        entries=[entry_out(e) for e in s.entries],
        is_loading=s.is_loading,
        phase=phase,
        choices=list(MOOD_CHOICES),
    )


def notices_out(notices: list[MoodTrackerException]) -> NoticesResponse:
    return NoticesResponse(
        total=len(notices),
        items=[NoticeOut(code=n.code, message=n.message) for n in notices],
    )
