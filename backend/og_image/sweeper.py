"""
Eviction Sweeper

Removes durable cache entries in two ways:
- sweep_expired(): everything older than the retention window (7 days)
- sweep_forced(): oldest-first, until a fixed fraction of the catalog is gone

The expiry sweep runs on a background asyncio task every 24 hours.
Age is always measured from the blob's modification time.
"""

import math
import time
import asyncio
import logging
from typing import Callable, List, Optional

from .config import (
    CACHE_RETENTION_SECONDS,
    SWEEP_INTERVAL_SECONDS,
    FORCED_EVICTION_FRACTION,
    FORCED_EVICTION_MIN_AGE_SECONDS,
)
from .errors import StorageError

logger = logging.getLogger(__name__)


class EvictionSweeper:
    """Age-based and pressure-based eviction over a blob store."""

    def __init__(
        self,
        blob_store,
        retention_seconds: float = CACHE_RETENTION_SECONDS,
        interval_seconds: float = SWEEP_INTERVAL_SECONDS,
        forced_fraction: float = FORCED_EVICTION_FRACTION,
        forced_min_age_seconds: float = FORCED_EVICTION_MIN_AGE_SECONDS,
        on_evict: Optional[Callable[[str], object]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.blob_store = blob_store
        self.retention_seconds = retention_seconds
        self.interval_seconds = interval_seconds
        self.forced_fraction = forced_fraction
        self.forced_min_age_seconds = forced_min_age_seconds
        self.on_evict = on_evict
        self._clock = clock
        self._task: Optional[asyncio.Task] = None

    def sweep_expired(self) -> List[str]:
        """
        Remove every entry older than the retention window.

        Returns:
            Keys that were removed. Empty when nothing had expired.
        """
        removed = self._sweep(self.retention_seconds, limit=None)
        if removed:
            logger.info(f"[Sweeper] Cleaned up {len(removed)} expired cache entries")
        return removed

    def sweep_forced(self) -> List[str]:
        """
        Free space after a rejected write.

        Deletes eligible entries oldest first until ceil(fraction * N) are
        gone, N being the number of entries listed, or the list runs out.

        Returns:
            Keys that were removed.
        """
        removed = self._sweep(self.forced_min_age_seconds, limit=self.forced_fraction)
        logger.info(f"[Sweeper] Forced cleanup removed {len(removed)} cache entries")
        return removed

    def _sweep(self, max_age: float, limit: Optional[float]) -> List[str]:
        try:
            blobs = self.blob_store.list()
        except StorageError as e:
            logger.error(f"[Sweeper] Error during cache cleanup: {e}")
            return []

        blobs.sort(key=lambda b: b.modified_at)
        target = math.ceil(len(blobs) * limit) if limit is not None else None
        now = self._clock()
        removed = []

        for blob in blobs:
            if now - blob.modified_at <= max_age:
                # Sorted oldest first, nothing after this is eligible either
                break
            try:
                deleted = self.blob_store.delete(blob.key)
            except StorageError as e:
                logger.error(f"[Sweeper] Failed to remove {blob.key}: {e}")
                continue
            if not deleted:
                continue

            removed.append(blob.key)
            if self.on_evict is not None:
                self.on_evict(blob.key)

            if target is not None and len(removed) >= target:
                break

        return removed

    # ============================================
    # Background schedule
    # ============================================

    def start(self) -> None:
        """Start the periodic expiry sweep."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._sweep_loop())
            logger.info(
                f"[Sweeper] Scheduled cache cleanup every {self.interval_seconds:.0f}s"
            )

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            logger.info("[Sweeper] Running scheduled cache cleanup...")
            try:
                await asyncio.to_thread(self.sweep_expired)
            except Exception as e:
                logger.error(f"[Sweeper] Scheduled cleanup failed: {e}")
