"""
Observation channels: current value + subscribe.

All methods must be called from the event loop that owns the controller;
replace-and-notify happens without an await in between, so no observer can
see a half-applied transition.

StateChannel   replays the latest value to new observers, skips no-op emits
NoticeChannel  error side-channel, no replay, keeps a short history
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]

# Queued by close() to wake a pending get().
_CLOSED = object()


class Subscription(Generic[T]):
    """Async iterator over a channel's emissions. Unbounded, never coalesced."""

    def __init__(self, channel: _Channel[T]):
        self._channel = channel
        self._queue: asyncio.Queue[T] = asyncio.Queue()
        self.closed = False

    def _push(self, value: T) -> None:
        self._queue.put_nowait(value)

    async def get(self) -> T:
        """Next value. Raises StopAsyncIteration once the subscription is closed."""
        value = await self._queue.get()
        if value is _CLOSED:
            # Leave it for any other waiter.
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return value

    def pending(self) -> int:
        return self._queue.qsize() - (1 if self.closed else 0)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._channel._subscriptions.discard(self)
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> Subscription[T]:
        return self

    async def __anext__(self) -> T:
        if self.closed:
            raise StopAsyncIteration
        return await self.get()

    async def __aenter__(self) -> Subscription[T]:
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


def _deliver(callback: Listener, value) -> None:
    try:
        callback(value)
    except Exception:
        # A broken renderer must not stop the others from updating.
        logger.exception("observer %r failed", callback)


class _Channel(Generic[T]):
    def __init__(self):
        self._listeners: list[Listener] = []
        self._subscriptions: set[Subscription[T]] = set()

    def listen(self, callback: Listener) -> Callable[[], None]:
        """Register a synchronous callback. Returns the unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def subscribe(self) -> Subscription[T]:
        sub: Subscription[T] = Subscription(self)
        self._subscriptions.add(sub)
        return sub

    @property
    def observer_count(self) -> int:
        return len(self._listeners) + len(self._subscriptions)

    def _notify(self, value: T) -> None:
        for sub in list(self._subscriptions):
            sub._push(value)
        for callback in list(self._listeners):
            _deliver(callback, value)


class StateChannel(_Channel[T]):
    def __init__(self, initial: T):
        super().__init__()
        self._value = initial

    @property
    def value(self) -> T:
        return self._value

    def listen(self, callback: Listener) -> Callable[[], None]:
        unsubscribe = super().listen(callback)
        _deliver(callback, self._value)
        return unsubscribe

    def subscribe(self) -> Subscription[T]:
        sub = super().subscribe()
        sub._push(self._value)
        return sub

    def emit(self, value: T) -> bool:
        """Replace the current value and notify. False when nothing changed."""
        if value == self._value:
            return False
        self._value = value
        self._notify(value)
        return True


class NoticeChannel(_Channel[T]):
    def __init__(self, history: int = 20):
        super().__init__()
        self._recent: deque[T] = deque(maxlen=history)

    @property
    def recent(self) -> list[T]:
        """Oldest first."""
        return list(self._recent)

    def publish(self, notice: T) -> None:
        self._recent.append(notice)
        self._notify(notice)
