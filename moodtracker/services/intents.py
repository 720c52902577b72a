"""
Intents (what the renderer asks for) and the snapshot (what it draws).

Both are frozen values: intents are consumed once, snapshots are replaced
wholesale and never patched.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from moodtracker.core.errors import MOOD_MAX, MOOD_MIN
from moodtracker.services.entry_store import MoodEntry

MOOD_CHOICES: tuple[int, ...] = tuple(range(MOOD_MIN, MOOD_MAX + 1))


@dataclass(frozen=True)
class SaveMood:
    """Persist a new observation with the given mood value."""
    mood: int


@dataclass(frozen=True)
class LoadEntries:
    """(Re)fetch the full history."""


Intent = Union[SaveMood, LoadEntries]


def is_valid_mood(mood) -> bool:
    # bool is an int subclass; True is not a mood.
    return isinstance(mood, int) and not isinstance(mood, bool) and MOOD_MIN <= mood <= MOOD_MAX


@dataclass(frozen=True)
class StateSnapshot:
    entries: tuple[MoodEntry, ...] = ()
    is_loading: bool = False

    def loading(self) -> StateSnapshot:
        """Same entries, spinner on."""
        return StateSnapshot(entries=self.entries, is_loading=True)

    def settled(self, entries: tuple[MoodEntry, ...] | None = None) -> StateSnapshot:
        """Spinner off, optionally with a fresh entries list."""
        return StateSnapshot(
            entries=self.entries if entries is None else tuple(entries),
            is_loading=False,
        )
