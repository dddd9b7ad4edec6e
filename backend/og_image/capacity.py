"""
Capacity Governor

Decides whether the durable tier can take another entry without going
over its byte ceiling. It only answers the question; evicting is the
caller's job.
"""

import logging

from .errors import StorageError

logger = logging.getLogger(__name__)


class CapacityGovernor:
    """Byte-size ceiling check over the durable tier."""

    def __init__(self, blob_store, max_cache_size_mb: int = 1000):
        self.blob_store = blob_store
        self.ceiling_bytes = max_cache_size_mb * 1024 * 1024

    def current_size(self) -> int:
        """Sum the sizes of all durable blobs (full scan)."""
        return sum(blob.size_bytes for blob in self.blob_store.list())

    def would_exceed(self, additional_bytes: int) -> bool:
        """
        Check whether storing ``additional_bytes`` more would pass the ceiling.

        If the durable tier cannot be scanned the answer is False: the write
        is allowed to proceed and fails on its own if storage is broken.
        """
        try:
            total = self.current_size()
        except StorageError as e:
            logger.error(f"[Capacity] Error checking cache size: {e}")
            return False
        return total + additional_bytes > self.ceiling_bytes
