"""
OG Image Module

Renders any URL into an OpenGraph-sized JPEG for social media previews.

Features:
- Two-tier cache (memory + disk) keyed by URL and viewport size
- Disk size ceiling with forced oldest-first eviction
- Daily removal of entries older than 7 days
- Hard limit on concurrent renders (excess requests get 429)
"""

from .cache_key import derive_key
from .cache_manager import ScreenshotCacheManager
from .coordinator import OutcomeStatus, RenderOutcome, RequestCoordinator
from .admission import AdmissionController
from .config import Settings
from .errors import AdmissionDenied, RenderError, StorageError

__all__ = [
    "derive_key",
    "ScreenshotCacheManager",
    "OutcomeStatus",
    "RenderOutcome",
    "RequestCoordinator",
    "AdmissionController",
    "Settings",
    "AdmissionDenied",
    "RenderError",
    "StorageError",
]
