# amo_notes/services/dedup.py

import threading
import time
from typing import Callable, Dict, Hashable


class Deduplicator:
    """Short-lived "have we seen this key" set; entries expire after ttl seconds."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self.seen_at: Dict[Hashable, float] = {}
        self.lock = threading.Lock()

    def seen(self, key: Hashable) -> bool:
        """Return True if key was recorded within the TTL; otherwise record it and return False."""
        with self.lock:
            now = self.clock()
            self._cleanup_expired(now)
            if key in self.seen_at:
                return True
            self.seen_at[key] = now
            return False

    def clear(self) -> None:
        with self.lock:
            self.seen_at.clear()

    def _cleanup_expired(self, now: float) -> None:
        expired_keys = [
            key
            for key, timestamp in self.seen_at.items()
            if now - timestamp >= self.ttl
        ]
        for key in expired_keys:
            del self.seen_at[key]
