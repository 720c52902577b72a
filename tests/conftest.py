"""
Shared pytest fixtures.

Uses an in-memory SQLite database so no database server is required for
tests, plus an in-process fake store for failure and latency injection.
"""
import time

import pytest
from fastapi.testclient import TestClient

from moodtracker.core.errors import StorageError
from moodtracker.db.base import init_db, make_engine, make_sessionmaker
from moodtracker.main import create_app
from moodtracker.services.entry_store import MoodEntry, SqlEntryStore

BASE_TS = 1_700_000_000_000


class StepClock:
    """Deterministic clock: BASE_TS, then +1s on every call."""

    def __init__(self, start: int = BASE_TS, step: int = 1_000):
        self.now = start - step
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now


class FakeStore:
    """EntryStore double with switchable failures and scripted list results."""

    def __init__(self, entries=()):
        self.rows: list[MoodEntry] = list(entries)
        self.next_id = max((e.id for e in self.rows), default=0) + 1
        self.fail_insert = False
        self.fail_list = False
        # Each item: (delay_seconds, result or None for "real rows").
        self.scripted: list[tuple[float, list | None]] = []
        self.calls: list[tuple] = []

    def insert(self, mood: int, timestamp: int) -> int:
        self.calls.append(("insert", mood, timestamp))
        if self.fail_insert:
            raise StorageError("insert", "disk full")
        entry = MoodEntry(id=self.next_id, mood=mood, timestamp=timestamp)
        self.next_id += 1
        self.rows.append(entry)
        return entry.id

    def list_all(self) -> list[MoodEntry]:
        self.calls.append(("list",))
        delay, result = self.scripted.pop(0) if self.scripted else (0, None)
        if delay:
            time.sleep(delay)
        if self.fail_list:
            raise StorageError("list", "medium unavailable")
        if result is not None:
            return list(result)
        return sorted(self.rows, key=lambda e: (e.timestamp, e.id), reverse=True)


@pytest.fixture()
def clock():
    return StepClock()


@pytest.fixture()
def fake_store():
    return FakeStore()


@pytest.fixture()
def seeded_store():
    return FakeStore([
        MoodEntry(id=1, mood=2, timestamp=BASE_TS - 3_000),
        MoodEntry(id=2, mood=4, timestamp=BASE_TS - 2_000),
        MoodEntry(id=3, mood=5, timestamp=BASE_TS - 1_000),
    ])


@pytest.fixture()
def engine():
    eng = make_engine("sqlite://")
    yield eng
    eng.dispose()


@pytest.fixture()
def store(engine):
    init_db(engine)
    return SqlEntryStore(make_sessionmaker(engine))


@pytest.fixture()
def client(engine, clock):
    app = create_app(engine=engine, clock=clock)
    with TestClient(app) as c:
        # Let the startup refresh settle before each test.
        c.post("/tracker/intents/load-entries", params={"wait": True})
        yield c
