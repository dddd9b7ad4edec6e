"""
Admission Controller

Bounds how many renders run at once. There is no queue: a request that
finds every slot taken is turned away immediately.
"""

import logging
from contextlib import asynccontextmanager
from threading import Lock

from .errors import AdmissionDenied

logger = logging.getLogger(__name__)


class AdmissionController:
    """Process-wide in-flight render counter with a hard ceiling."""

    def __init__(self, max_concurrent: int = 10):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._limit = max_concurrent
        self._in_flight = 0
        self._lock = Lock()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def try_acquire(self) -> bool:
        """Take a permit if one is free. Returns False when at the ceiling."""
        with self._lock:
            if self._in_flight >= self._limit:
                return False
            self._in_flight += 1
            return True

    def release(self) -> None:
        """Give back a permit taken by a successful try_acquire()."""
        with self._lock:
            if self._in_flight <= 0:
                raise RuntimeError("release() called without an outstanding permit")
            self._in_flight -= 1

    @asynccontextmanager
    async def permit(self):
        """
        Hold a permit for the duration of the block.

        Raises:
            AdmissionDenied: if no permit is free. Nothing is held in that case.
        """
        if not self.try_acquire():
            logger.warning(
                f"[Admission] Denied, {self._in_flight}/{self._limit} renders in flight"
            )
            raise AdmissionDenied(self._limit)
        try:
            yield
        finally:
            self.release()
