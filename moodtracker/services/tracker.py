"""
Tracker controller: the single owner of the current StateSnapshot.

Public API
----------
handle_intent(intent)   → None    (non-blocking, result arrives on `state`)
start() / join() / aclose()       (worker lifecycle, also `async with`)
state                   StateChannel[StateSnapshot]
errors                  NoticeChannel[MoodTrackerException]

Intents are queued and executed one at a time by a single worker task, so
store calls and snapshot emissions follow issuance order. Store I/O runs on
a thread via asyncio.to_thread; the event loop never blocks on the database.

Refresh protocol
----------------
1. phase=refreshing, emit {previous entries, is_loading=True}
2. store.list_all()
3. ok   → emit {result, is_loading=False}, phase=idle
4. fail → emit {previous entries, is_loading=False}, surface StorageError
"""
from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import time
from typing import Callable, Optional

from moodtracker.core.errors import (
    ControllerNotRunningError,
    InvalidMoodValue,
    MoodTrackerException,
    StorageError,
    UnhandledIntentError,
)
from moodtracker.services.entry_store import EntryStore, MoodEntry
from moodtracker.services.intents import (
    Intent,
    LoadEntries,
    SaveMood,
    StateSnapshot,
    is_valid_mood,
)
from moodtracker.services.observable import NoticeChannel, StateChannel

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


class ControllerPhase(str, enum.Enum):
    idle = "idle"
    refreshing = "refreshing"


def wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class TrackerController:
    def __init__(
        self,
        store: EntryStore,
        clock: Clock = wall_clock_ms,
        notice_history: int = 20,
    ):
        self._store = store
        self._clock = clock
        self.phase = ControllerPhase.refreshing
        self.state: StateChannel[StateSnapshot] = StateChannel(StateSnapshot(is_loading=True))
        self.errors: NoticeChannel[MoodTrackerException] = NoticeChannel(notice_history)
        self._queue: asyncio.Queue[Intent] = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._closed = False
        # Refresh sequence numbers: last issued / last applied to state.
        self._issued = 0
        self._applied = 0

    @property
    def snapshot(self) -> StateSnapshot:
        return self.state.value

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Launch the worker and queue the initial refresh."""
        if self.running:
            return
        self._closed = False
        self._worker = asyncio.create_task(self._run(), name="tracker-worker")
        self._queue.put_nowait(LoadEntries())

    async def join(self) -> None:
        """Wait until every intent queued so far has been processed."""
        await self._queue.join()

    async def aclose(self) -> None:
        """Stop the worker. Intents still queued are dropped with a notice each."""
        self._closed = True
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
        while not self._queue.empty():
            intent = self._queue.get_nowait()
            logger.warning("controller closed, dropping %r", intent)
            self._surface(ControllerNotRunningError())
            self._queue.task_done()

    async def __aenter__(self) -> TrackerController:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def handle_intent(self, intent: Intent) -> None:
        """Queue an intent. Never raises for bad input; errors go to `errors`."""
        if self._closed:
            logger.warning("controller closed, rejecting %r", intent)
            self._surface(ControllerNotRunningError())
            return
        if isinstance(intent, SaveMood) and not is_valid_mood(intent.mood):
            logger.info("rejected SaveMood with mood=%r", intent.mood)
            self._surface(InvalidMoodValue(intent.mood))
            return
        self._queue.put_nowait(intent)

    async def _run(self) -> None:
        while True:
            intent = await self._queue.get()
            try:
                await self._dispatch(intent)
            except Exception as exc:
                logger.exception("processing %r failed", intent)
                if not isinstance(exc, MoodTrackerException):
                    exc = MoodTrackerException(str(exc))
                self._surface(exc)
                if self.snapshot.is_loading:
                    self.state.emit(self.snapshot.settled())
                self.phase = ControllerPhase.idle
            finally:
                self._queue.task_done()

    async def _dispatch(self, intent: Intent) -> None:
        if isinstance(intent, SaveMood):
            await self._save(intent.mood)
        elif isinstance(intent, LoadEntries):
            await self._refresh()
        else:
            raise UnhandledIntentError(intent)

    async def _save(self, mood: int) -> None:
        timestamp = self._clock()
        try:
            entry_id = await asyncio.to_thread(self._store.insert, mood, timestamp)
        except StorageError as exc:
            logger.warning("insert failed, refreshing anyway: %s", exc.message)
            self._surface(exc)
        else:
            logger.info("saved mood=%s as entry id=%s", mood, entry_id)
        # Refresh even after a failed insert so the UI never hangs on loading.
        await self._refresh()

    async def _refresh(self) -> None:
        self._issued += 1
        seq = self._issued
        self.phase = ControllerPhase.refreshing
        self.state.emit(self.snapshot.loading())

        try:
            entries = await asyncio.to_thread(self._store.list_all)
        except StorageError as exc:
            logger.warning("refresh #%d failed, keeping last known entries: %s", seq, exc.message)
            self._apply(seq, None)
            self._surface(exc)
            return
        self._apply(seq, tuple(entries))

    def _apply(self, seq: int, entries: Optional[tuple[MoodEntry, ...]]) -> None:
        """Settle refresh `seq`. None keeps the current entries.

        The single worker already applies refreshes in issue order; the
        sequence check is a safeguard should refreshes ever overlap.
        """
        if seq < self._applied:
            logger.debug("discarding stale refresh #%d (applied #%d)", seq, self._applied)
            if self.snapshot.is_loading:
                self.state.emit(self.snapshot.settled())
            return
        self._applied = seq
        self.state.emit(self.snapshot.settled(entries))
        if seq == self._issued:
            self.phase = ControllerPhase.idle

    def _surface(self, exc: MoodTrackerException) -> None:
        self.errors.publish(exc)
