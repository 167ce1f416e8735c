import threading
import time
from collections import OrderedDict
from typing import Callable, Iterable

from ..models import MetadataResponse

CACHE_TTL_SECONDS = 60 * 60 * 6  # 6 hours


def canonical_key(ids: Iterable[str]) -> str:
    return ",".join(sorted(set(ids)))


class MetadataCache:
    """TTL cache of live responses keyed by canonical ID set. Expired entries are dropped on read."""

    def __init__(
        self,
        default_ttl: float = CACHE_TTL_SECONDS,
        max_entries: int = 512,
        clock: Callable[[], float] = time.time,
    ):
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, MetadataResponse]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> MetadataResponse | None:
        with self._lock:
            hit = self._entries.get(key)
            if not hit:
                return None
            expires_at, value = hit
            if self._clock() >= expires_at:
                self._entries.pop(key, None)
                return None
            self._entries.move_to_end(key)
            return value

    def put(self, key: str, response: MetadataResponse, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return
        with self._lock:
            self._entries[key] = (self._clock() + ttl, response)
            self._entries.move_to_end(key)
            if self.max_entries > 0:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
