"""Per-client sliding window admission control for anonymous traffic."""

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict

import structlog


logger = structlog.get_logger(__name__)


class SlidingWindowRateLimiter:
    """
    Bound the number of requests per client key within a trailing window.

    Timestamps are appended on every call and pruned lazily from the front,
    so each deque stays sorted. State is per-process only and resets on
    restart.
    """

    def __init__(
        self,
        capacity: int,
        window_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.capacity = capacity
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def admit(self, client_key: str) -> bool:
        """Record a request for ``client_key`` and report whether it is allowed."""
        with self._lock:
            now = self._clock()
            timestamps = self._windows.setdefault(client_key, deque())
            timestamps.append(now)
            cutoff = now - self.window_seconds
            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()
            allowed = len(timestamps) <= self.capacity

        if not allowed:
            logger.info("Rate limit exceeded", client=client_key, count=len(timestamps), capacity=self.capacity)
        return allowed

    def usage(self, client_key: str) -> int:
        """Number of timestamps currently held for ``client_key`` (no pruning)."""
        with self._lock:
            return len(self._windows.get(client_key, ()))

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
