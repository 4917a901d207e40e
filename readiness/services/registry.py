# readiness/services/registry.py
import logging
import time
from typing import Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TTLRegistry(Generic[T]):
    """
    In-memory registry of short-lived objects (audit results, crawl sessions).

    Entries older than ``ttl_seconds`` are dropped on the next cleanup; the
    optional ``on_evict`` hook lets owners release resources (e.g. cancel a
    poll task). Single-process only; nothing survives a restart.
    """

    def __init__(
        self,
        ttl_seconds: float,
        on_evict: Optional[Callable[[T], None]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.on_evict = on_evict
        self._clock = clock
        self._entries: Dict[str, Dict] = {}

    def put(self, key: str, value: T) -> T:
        self.cleanup()
        self._entries[key] = {"value": value, "created_at": self._clock()}
        return value

    def get(self, key: str) -> Optional[T]:
        self.cleanup()
        entry = self._entries.get(key)
        return entry["value"] if entry else None

    def pop(self, key: str) -> Optional[T]:
        entry = self._entries.pop(key, None)
        return entry["value"] if entry else None

    def cleanup(self) -> int:
        """Remove expired entries; returns how many were dropped."""
        now = self._clock()
        expired = [k for k, v in self._entries.items() if (now - v["created_at"]) > self.ttl_seconds]
        for key in expired:
            value = self._entries.pop(key)["value"]
            if self.on_evict:
                self.on_evict(value)
        if expired:
            logger.debug("Evicted %d expired entries", len(expired))
        return len(expired)

    def values(self):
        return [v["value"] for v in self._entries.values()]

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
