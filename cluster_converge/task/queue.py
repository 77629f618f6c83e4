"""Work queue with per-key single flight execution.

A key is handed out to at most one worker at a time. Adding a key that is
already waiting is a no-op, and adding a key that is being processed marks it
dirty so it is handed out once more after the worker calls `done`. This gives
strict serialization per key with concurrency across keys.
"""

import asyncio
from collections import deque
from collections.abc import Hashable
from dataclasses import dataclass
import logging
from typing import Generic, TypeVar

__all__ = ["WorkQueue", "QueueShutdown", "BackoffConfig", "ExponentialBackoff"]

_LOGGER = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)

# Keeps the delay computation within float range
MAX_EXPONENT = 62


class QueueShutdown(Exception):
    """Raised by `WorkQueue.get` once the queue is shut down and drained."""


class WorkQueue(Generic[K]):
    """A deduplicating queue of keys to process."""

    def __init__(self) -> None:
        """Initialize the WorkQueue."""
        self._queue: deque[K] = deque()
        self._dirty: set[K] = set()
        self._processing: set[K] = set()
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._timers: set[asyncio.TimerHandle] = set()
        self._shutting_down = False

    def __len__(self) -> int:
        return len(self._queue)

    def add(self, key: K) -> None:
        """Mark the key as needing processing."""
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            _LOGGER.debug("Key %s is in flight, queued for another pass", key)
            return
        self._queue.append(key)
        self._wakeup_next()

    def add_after(self, key: K, delay: float) -> None:
        """Add the key once the delay in seconds has passed."""
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(key)
            return

        def fire() -> None:
            self._timers.discard(handle)
            self.add(key)

        handle = asyncio.get_running_loop().call_later(delay, fire)
        self._timers.add(handle)

    async def get(self) -> K:
        """Wait for the next key to process.

        The caller must call `done` with the key when finished with it.
        """
        while not self._queue:
            if self._shutting_down:
                raise QueueShutdown()
            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            try:
                await waiter
            except asyncio.CancelledError:
                if waiter in self._waiters:
                    self._waiters.remove(waiter)
                elif self._queue:
                    # Pass the wakeup on to another getter
                    self._wakeup_next()
                raise
        key = self._queue.popleft()
        self._dirty.discard(key)
        self._processing.add(key)
        return key

    def done(self, key: K) -> None:
        """Mark the key as processed, requeueing it if it was added meanwhile."""
        self._processing.discard(key)
        if key in self._dirty and not self._shutting_down:
            self._queue.append(key)
            self._wakeup_next()

    def shutdown(self) -> None:
        """Stop accepting keys and wake up all waiting getters."""
        self._shutting_down = True
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)

    def _wakeup_next(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                break


@dataclass
class BackoffConfig:
    """Delays used when retrying a failed key."""

    base_delay: float = 0.005
    """Seconds to wait after the first failure."""

    max_delay: float = 1000.0
    """Upper bound of the delay in seconds."""


class ExponentialBackoff(Generic[K]):
    """Tracks failures per key and computes the delay before the next retry."""

    def __init__(self, config: BackoffConfig | None = None) -> None:
        """Initialize the ExponentialBackoff."""
        self._config = config or BackoffConfig()
        self._failures: dict[K, int] = {}

    def when(self, key: K) -> float:
        """Record a failure of the key and return the delay before a retry."""
        failures = self._failures.get(key, 0)
        self._failures[key] = failures + 1
        delay = self._config.base_delay * (2 ** min(failures, MAX_EXPONENT))
        return min(delay, self._config.max_delay)

    def forget(self, key: K) -> None:
        """Reset the failures of the key after it succeeded."""
        self._failures.pop(key, None)

    def num_failures(self, key: K) -> int:
        return self._failures.get(key, 0)
