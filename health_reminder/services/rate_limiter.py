"""Simple in-memory rate limiting for credential endpoints."""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Iterable, Tuple


@dataclass
class _Bucket:
    window_seconds: int
    timestamps: Deque[float] = field(default_factory=deque)


class InMemoryRateLimiter:
    """
    Sliding-window rate limiter suitable for single-node deployments.

    Keys embed caller-supplied values (client address, login email), so a
    bucket is dropped as soon as its window empties, and all buckets are
    swept once more than `max_keys` are held.
    """

    def __init__(self, clock: Callable[[], float] = time.time, max_keys: int = 10000) -> None:
        self._lock = threading.Lock()
        self._buckets: Dict[str, _Bucket] = {}
        self._clock = clock
        self._max_keys = max_keys

    def _prune(self, key: str, now: float) -> int:
        """Drop expired hits for key; returns how many remain"""
        bucket = self._buckets.get(key)
        if bucket is None:
            return 0
        cutoff = now - bucket.window_seconds
        while bucket.timestamps and bucket.timestamps[0] < cutoff:
            bucket.timestamps.popleft()
        if not bucket.timestamps:
            del self._buckets[key]
            return 0
        return len(bucket.timestamps)

    def _sweep(self, now: float) -> None:
        for key in list(self._buckets):
            self._prune(key, now)

    def allow_all(self, key: str, windows: Iterable[Tuple[int, int]]) -> bool:
        """
        Record one hit against every (limit, window_seconds) pair for key.

        The hit is only counted when all windows have room, so a request
        rejected by the hourly window does not eat into the minute window.
        """
        now = self._clock()
        windows = [(f"{key}:{window}", limit, window) for limit, window in windows]
        with self._lock:
            if len(self._buckets) >= self._max_keys:
                self._sweep(now)
            if any(self._prune(bucket_key, now) >= limit for bucket_key, limit, _ in windows):
                return False
            for bucket_key, _, window in windows:
                bucket = self._buckets.setdefault(bucket_key, _Bucket(window_seconds=window))
                bucket.timestamps.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


rate_limiter = InMemoryRateLimiter()
