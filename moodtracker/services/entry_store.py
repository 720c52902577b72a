"""
Entry store: the durable, append-only record of mood entries.

Public API
----------
EntryStore                        Protocol the controller depends on
SqlEntryStore.insert(mood, ts)  → int               (the only write in the core)
SqlEntryStore.list_all()        → list[MoodEntry]   (timestamp DESC, id DESC)

Every SQLAlchemy failure is re-raised as StorageError; nothing is dropped
silently.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from moodtracker.core.errors import StorageError
from moodtracker.models.mood_entry import MoodEntryRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoodEntry:
    """Immutable view of a persisted entry, safe to hand to observers."""
    id: int
    mood: int
    timestamp: int


class EntryStore(Protocol):
    """Interface for appending and listing mood entries."""

    def insert(self, mood: int, timestamp: int) -> int:
        """Append one entry and return its store-assigned id."""
        ...

    def list_all(self) -> list[MoodEntry]:
        """Every entry, most recent timestamp first. Empty list if none."""
        ...


class SqlEntryStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def insert(self, mood: int, timestamp: int) -> int:
        try:
            with self._session_factory() as db:
                record = MoodEntryRecord(mood=mood, timestamp=timestamp)
                db.add(record)
                db.commit()
                entry_id = record.id
        except SQLAlchemyError as exc:
            raise StorageError("insert", str(exc)) from exc
        logger.debug("inserted mood entry id=%s mood=%s timestamp=%s", entry_id, mood, timestamp)
        return entry_id

    def list_all(self) -> list[MoodEntry]:
        # id DESC breaks timestamp ties: most recently inserted first.
        stmt = select(MoodEntryRecord).order_by(
            MoodEntryRecord.timestamp.desc(), MoodEntryRecord.id.desc()
        )
        try:
            with self._session_factory() as db:
                rows = db.scalars(stmt).all()
                return [_to_entry(r) for r in rows]
        except SQLAlchemyError as exc:
            raise StorageError("list", str(exc)) from exc

    def ping(self) -> bool:
        """True when the database answers `SELECT 1`."""
        try:
            with self._session_factory() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True


def _to_entry(r: MoodEntryRecord) -> MoodEntry:
    return MoodEntry(id=r.id, mood=r.mood, timestamp=r.timestamp)
