"""
Screenshot Cache Manager

Two-tier cache for rendered screenshots:
- In-process tier: MemoryStore, bounded and expiring after 1 hour
- Durable tier: blob store (one file per entry)

Reads go memory first, then disk, back-filling memory on a disk hit.
Writes are gated by the capacity governor; when the ceiling would be
passed the entry is not stored and a forced eviction runs instead.

Caching is best effort. Storage failures are logged and reported as a
miss or a skipped write, never raised to the caller.
"""

import asyncio
import logging
from typing import Optional

from .capacity import CapacityGovernor
from .errors import StorageError
from .memory_store import MemoryStore
from .sweeper import EvictionSweeper

logger = logging.getLogger(__name__)


class ScreenshotCacheManager:
    """
    Read-through, write-through cache over a memory tier and a blob store.

    Usage:
        cache = ScreenshotCacheManager(FileBlobStore("./cache"))
        data = await cache.get(key)
        if data is None:
            stored = await cache.put(key, rendered)
    """

    def __init__(
        self,
        blob_store,
        max_cache_size_mb: int = 1000,
        memory_store: Optional[MemoryStore] = None,
        sweeper: Optional[EvictionSweeper] = None,
    ):
        self.blob_store = blob_store
        self.memory = memory_store if memory_store is not None else MemoryStore()
        self.governor = CapacityGovernor(blob_store, max_cache_size_mb)
        self.sweeper = sweeper if sweeper is not None else EvictionSweeper(blob_store)
        # Entries evicted from disk should not linger in memory. A hook
        # already set on an injected sweeper still runs after the discard.
        self._chained_on_evict = self.sweeper.on_evict
        self.sweeper.on_evict = self._on_evict

        self._stats_memory_hits = 0
        self._stats_disk_hits = 0
        self._stats_misses = 0
        self._stats_writes = 0
        self._stats_rejected_writes = 0
        self._stats_storage_errors = 0

    def _on_evict(self, key: str) -> None:
        self.memory.discard(key)
        if self._chained_on_evict is not None:
            self._chained_on_evict(key)

    async def get(self, key: str) -> Optional[bytes]:
        """
        Get cached image bytes.

        Returns:
            Image bytes on a memory or disk hit, None otherwise.
        """
        data = self.memory.get(key)
        if data is not None:
            self._stats_memory_hits += 1
            logger.debug(f"[OgCache] Memory hit: {key}")
            return data

        try:
            if not await asyncio.to_thread(self.blob_store.exists, key):
                self._stats_misses += 1
                return None
            data = await asyncio.to_thread(self.blob_store.read, key)
        except StorageError as e:
            self._stats_storage_errors += 1
            self._stats_misses += 1
            logger.error(f"[OgCache] Error reading from cache: {e}")
            return None

        # Store in memory for faster access next time
        self.memory.set(key, data)
        self._stats_disk_hits += 1
        logger.debug(f"[OgCache] Disk hit: {key}")
        return data

    async def put(self, key: str, data: bytes) -> bool:
        """
        Cache a rendered image.

        Returns:
            True if stored, False if rejected for capacity or a storage error.
        """
        if await asyncio.to_thread(self.governor.would_exceed, len(data)):
            self._stats_rejected_writes += 1
            logger.warning("[OgCache] Cache size limit reached. Running cleanup...")
            await self.sweep_forced()
            return False

        try:
            await asyncio.to_thread(self.blob_store.write, key, data)
        except StorageError as e:
            self._stats_storage_errors += 1
            logger.error(f"[OgCache] Error saving to cache: {e}")
            return False

        try:
            self.memory.set(key, data)
        except Exception as e:
            # The next get() will hit disk and repopulate memory
            logger.warning(f"[OgCache] Memory mirror failed for {key}: {e}")

        self._stats_writes += 1
        logger.debug(f"[OgCache] Cached: {key} ({len(data)} bytes)")
        return True

    async def sweep_expired(self) -> int:
        """Run the retention sweep now. Returns the number of entries removed."""
        removed = await asyncio.to_thread(self.sweeper.sweep_expired)
        return len(removed)

    async def sweep_forced(self) -> int:
        """Run a forced eviction pass now. Returns the number of entries removed."""
        removed = await asyncio.to_thread(self.sweeper.sweep_forced)
        return len(removed)

    async def clear(self) -> int:
        """
        Remove every cached entry from both tiers.

        Returns:
            Number of durable entries removed.
        """
        self.memory.clear()
        removed = 0
        try:
            blobs = await asyncio.to_thread(self.blob_store.list)
        except StorageError as e:
            logger.error(f"[OgCache] Failed to list cache for clearing: {e}")
            return 0
        for blob in blobs:
            try:
                if await asyncio.to_thread(self.blob_store.delete, blob.key):
                    removed += 1
            except StorageError as e:
                logger.error(f"[OgCache] Failed to remove {blob.key}: {e}")
        logger.info(f"[OgCache] Cleared all {removed} entries")
        return removed

    def get_stats(self) -> dict:
        """Get cache statistics."""
        try:
            blobs = self.blob_store.list()
            disk_entries = len(blobs)
            disk_size = sum(b.size_bytes for b in blobs)
        except StorageError as e:
            logger.error(f"[OgCache] Failed to list cache for stats: {e}")
            disk_entries = 0
            disk_size = 0

        ceiling = self.governor.ceiling_bytes
        memory_stats = self.memory.stats()
        return {
            "memory_hits": self._stats_memory_hits,
            "disk_hits": self._stats_disk_hits,
            "misses": self._stats_misses,
            "writes": self._stats_writes,
            "rejected_writes": self._stats_rejected_writes,
            "storage_errors": self._stats_storage_errors,
            "memory_entries": memory_stats["entries"],
            "disk_entries": disk_entries,
            "total_size_bytes": disk_size,
            "total_size_mb": round(disk_size / (1024 * 1024), 2),
            "max_size_mb": ceiling // (1024 * 1024),
            "usage_percent": round(disk_size / ceiling * 100, 1) if ceiling > 0 else 0,
        }
