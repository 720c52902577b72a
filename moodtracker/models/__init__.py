from .mood_entry import MoodEntryRecord

__all__ = [
    "MoodEntryRecord",
]
