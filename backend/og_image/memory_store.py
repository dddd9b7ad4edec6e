"""
Memory Store Implementation

In-process tier of the screenshot cache.

Features:
- Thread-safe operations with Lock
- Per-entry TTL, expired entries are dropped lazily on access
- Bounded entry count, oldest entry evicted first
- Reads never extend an entry's lifetime
"""

import time
from typing import Callable, Dict, Optional
from dataclasses import dataclass
from threading import Lock

from .config import MEMORY_CACHE_TTL_SECONDS


@dataclass
class MemoryEntry:
    """A rendered image held in memory."""
    key: str
    data: bytes
    stored_at: float
    ttl: float = MEMORY_CACHE_TTL_SECONDS

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class MemoryStore:
    """
    Thread-safe in-memory image store

    Features:
    - Maximum entry limit with oldest-first eviction
    - TTL-based expiration
    - Thread-safe with Lock
    """

    def __init__(
        self,
        max_entries: int = 256,
        default_ttl: float = MEMORY_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize memory store

        Args:
            max_entries: Maximum number of entries to keep
            default_ttl: Time-to-live in seconds (1h)
            clock: Time source, seconds since the epoch
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._store: Dict[str, MemoryEntry] = {}
        self._lock = Lock()
        self._max_entries = max_entries
        self._default_ttl = default_ttl
        self._clock = clock

    def set(self, key: str, data: bytes, ttl: Optional[float] = None) -> None:
        """
        Store image bytes under ``key``, replacing any previous value.

        Evicts the oldest entries when the store is full.
        """
        with self._lock:
            now = self._clock()
            self._store.pop(key, None)

            while len(self._store) >= self._max_entries:
                self._cleanup_expired(now)
                if len(self._store) < self._max_entries:
                    break
                oldest_key = min(
                    self._store,
                    key=lambda k: self._store[k].stored_at
                )
                del self._store[oldest_key]

            self._store[key] = MemoryEntry(
                key=key,
                data=data,
                stored_at=now,
                ttl=ttl if ttl is not None else self._default_ttl,
            )

    def get(self, key: str) -> Optional[bytes]:
        """
        Get image bytes by key

        Returns:
            The bytes if present and not expired, None otherwise
        """
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._store[key]
                return None
            return entry.data

    def discard(self, key: str) -> bool:
        """
        Remove an entry

        Returns:
            True if removed, False if not present
        """
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> int:
        """
        Clear all entries

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._store)
            self._store.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def stats(self) -> Dict[str, float]:
        """Get memory tier statistics"""
        with self._lock:
            total_size = sum(e.size_bytes for e in self._store.values())
            return {
                "entries": len(self._store),
                "max_entries": self._max_entries,
                "size_bytes": total_size,
                "ttl_seconds": self._default_ttl,
            }

    def _cleanup_expired(self, now: float) -> int:
        """
        Remove expired entries (internal, assumes lock held)

        Returns:
            Number of entries removed
        """
        expired = [
            k for k, v in self._store.items()
            if v.is_expired(now)
        ]
        for k in expired:
            del self._store[k]
        return len(expired)
