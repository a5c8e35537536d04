"""
In-process metadata cache with TTL-based expiration.

One instance is built by the application factory and shared by every
resolver; keys are scheme-prefixed normalized identifiers.
"""

import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from mediashelf.services.metadata import BookMetadata

logger = logging.getLogger(__name__)


class MetadataCache:
    """Bounded, time-expiring key -> BookMetadata store.

    Eviction only ever removes expired entries: when the entry count passes
    ``max_entries`` a sweep drops everything older than ``ttl``. If nothing
    has expired the cache is allowed to stay above the ceiling until the
    next sweep.
    """

    DEFAULT_TTL = 24 * 60 * 60
    DEFAULT_MAX_ENTRIES = 1000

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[BookMetadata, float]] = {}
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def _is_expired(self, stored_at: float, now: float) -> bool:
        return now - stored_at > self.ttl

    def get(self, key: str) -> Optional[BookMetadata]:
        """
        Return the cached value, or None when missing or expired.

        An expired entry is evicted as a side effect.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            value, stored_at = entry
            if self._is_expired(stored_at, self._clock()):
                del self._entries[key]
                logger.debug(f"MetadataCache: expired {key}")
                return None

            return value

    def put(self, key: str, value: BookMetadata) -> None:
        """Insert or overwrite an entry; sweep expired entries past the ceiling."""
        with self._lock:
            self._entries[key] = (value, self._clock())
            if len(self._entries) > self.max_entries:
                removed = self._sweep_locked()
                logger.debug(
                    f"MetadataCache: size ceiling {self.max_entries} exceeded, swept {removed} expired entries"
                )

    def purge_expired(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        with self._lock:
            return self._sweep_locked()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _sweep_locked(self) -> int:
        now = self._clock()
        expired = [key for key, (_, stored_at) in self._entries.items()
                   if self._is_expired(stored_at, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)
