"""
Sliding-window request limiter keyed by client address.

State lives in process memory only. Separate processes (or serverless
instances) keep independent windows, so the limit is per instance and
resets on restart.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_SECONDS = 60
RATE_LIMIT_MAX_REQUESTS = 60
RATE_LIMIT_SWEEP_THRESHOLD = 1000


class RateLimiter:
    def __init__(
        self,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        sweep_threshold: int = RATE_LIMIT_SWEEP_THRESHOLD,
        clock: Callable[[], float] = time.time,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._buckets: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    @property
    def misconfigured(self) -> bool:
        return self.window_seconds <= 0 or self.max_requests <= 0

    def admit(self, client_key: str) -> bool:
        if self.misconfigured:
            return False

        with self._lock:
            now_ts = self._clock()
            bucket = self._buckets.get(client_key)
            if bucket is None:
                bucket = deque()
                self._buckets[client_key] = bucket

            self._prune(bucket, now_ts)
            if len(bucket) >= self.max_requests:
                return False

            bucket.append(now_ts)
            if len(self._buckets) > self.sweep_threshold:
                self._sweep_locked(now_ts)
            return True

    def sweep(self) -> int:
        with self._lock:
            return self._sweep_locked(self._clock())

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._buckets)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def _prune(self, bucket: deque[float], now_ts: float) -> None:
        cutoff = now_ts - self.window_seconds
        while bucket and bucket[0] <= cutoff:
            bucket.popleft()

    def _sweep_locked(self, now_ts: float) -> int:
        removed = 0
        for key in list(self._buckets):
            bucket = self._buckets[key]
            self._prune(bucket, now_ts)
            if not bucket:
                del self._buckets[key]
                removed += 1
        if removed:
            logger.debug("Rate limiter swept %d idle clients, %d active", removed, len(self._buckets))
        return removed
