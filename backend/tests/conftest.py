"""
OG image service test configuration.

Fixtures and test doubles shared by every test module:
- FakeClock: a controllable time source
- InMemoryBlobStore: durable tier stand-in that counts every call
- FakeRenderer: renderer stand-in that can fail or block on demand
"""

import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

# Add backend directory to the Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from og_image.admission import AdmissionController
from og_image.blob_store import BlobInfo
from og_image.cache_manager import ScreenshotCacheManager
from og_image.coordinator import RequestCoordinator
from og_image.errors import RenderError, StorageError
from og_image.memory_store import MemoryStore
from og_image.sweeper import EvictionSweeper

START_TIME = 1_700_000_000.0
DAY = 24 * 60 * 60


# ============================================
# Test doubles
# ============================================

class FakeClock:
    """Callable time source that only moves when told to."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryBlobStore:
    """Blob store kept in a dict, with per-operation call counters."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.blobs: Dict[str, Tuple[bytes, float]] = {}
        self.calls: Dict[str, int] = {
            "exists": 0, "read": 0, "write": 0, "delete": 0, "list": 0,
        }
        # Operations listed here raise StorageError
        self.failing: Set[str] = set()

    def _enter(self, operation: str, key: str = "") -> None:
        self.calls[operation] += 1
        if operation in self.failing:
            raise StorageError(operation, key, OSError("simulated I/O failure"))

    def seed(self, key: str, data: bytes, age: float) -> None:
        """Insert a blob directly, ``age`` seconds old, without counting a call."""
        self.blobs[key] = (data, self.clock() - age)

    def exists(self, key: str) -> bool:
        self._enter("exists", key)
        return key in self.blobs

    def read(self, key: str) -> bytes:
        self._enter("read", key)
        if key not in self.blobs:
            raise StorageError("read", key, FileNotFoundError(key))
        return self.blobs[key][0]

    def write(self, key: str, data: bytes) -> None:
        self._enter("write", key)
        self.blobs[key] = (data, self.clock())

    def delete(self, key: str) -> bool:
        self._enter("delete", key)
        return self.blobs.pop(key, None) is not None

    def list(self) -> List[BlobInfo]:
        self._enter("list")
        return [
            BlobInfo(key=k, size_bytes=len(data), modified_at=mtime)
            for k, (data, mtime) in self.blobs.items()
        ]

    @property
    def total_size(self) -> int:
        return sum(len(data) for data, _ in self.blobs.values())


class FakeRenderer:
    """
    Renderer stand-in.

    Set ``fail`` to make every render raise RenderError. Set ``gate`` to an
    asyncio.Event to hold renders until the event is set.
    """

    def __init__(self, image: bytes = b"\xff\xd8fake-jpeg\xff\xd9"):
        self.image = image
        self.fail = False
        self.crash: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[Tuple[str, int, int]] = []
        self.in_flight = 0
        self.started = False
        self.closed = False

    async def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.closed = True

    async def render(self, url: str, width: int, height: int, timeout_ms: int = 30000) -> bytes:
        self.calls.append((url, width, height))
        self.in_flight += 1
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.crash is not None:
                raise self.crash
            if self.fail:
                raise RenderError("net::ERR_NAME_NOT_RESOLVED")
            return self.image
        finally:
            self.in_flight -= 1


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def blob_store(clock):
    return InMemoryBlobStore(clock)


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def cache(blob_store, clock):
    """Two-tier cache over the in-memory blob store with a 1MB ceiling."""
    return ScreenshotCacheManager(
        blob_store,
        max_cache_size_mb=1,
        memory_store=MemoryStore(max_entries=16, clock=clock),
        sweeper=EvictionSweeper(blob_store, clock=clock),
    )


@pytest.fixture
def admission():
    return AdmissionController(max_concurrent=3)


@pytest.fixture
def coordinator(cache, admission, renderer):
    return RequestCoordinator(cache=cache, admission=admission, renderer=renderer)


# ============================================
# Helper Functions
# ============================================

def assert_jpeg_response(response, cache_status: str):
    """Assert an image response with the expected X-Cache marker."""
    assert response.status_code == 200, response.text
    assert response.headers["content-type"] == "image/jpeg"
    assert response.headers["x-cache"] == cache_status
    assert response.headers["cache-control"] == "public, max-age=3600"


async def wait_until(predicate, timeout: float = 2.0):
    """Yield to the event loop until ``predicate()`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)
