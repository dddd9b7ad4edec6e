"""
Service Configuration

All tunables are read from environment variables once at startup.
Values that the cache lifecycle treats as fixed policy live as module
constants instead.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

# ============================================
# Fixed policy
# ============================================

MEMORY_CACHE_TTL_SECONDS = 60 * 60            # 1 hour
CACHE_RETENTION_SECONDS = 7 * 24 * 60 * 60    # 7 days
SWEEP_INTERVAL_SECONDS = 24 * 60 * 60         # 24 hours
FORCED_EVICTION_FRACTION = 0.2
FORCED_EVICTION_MIN_AGE_SECONDS = 0.001

MIN_DIMENSION = 50
DEFAULT_WIDTH = 1200
DEFAULT_HEIGHT = 630
MAX_URL_LENGTH = 2000
JPEG_QUALITY = 90

# Appended to every target so pages can detect they are being captured
TRACKING_PARAM = "URL2OG=1"

BROWSER_CACHE_CONTROL = "public, max-age=3600"


def _parse_domains(raw: str) -> List[str]:
    return [d.strip().lower() for d in raw.split(",") if d.strip()]


@dataclass
class Settings:
    """Runtime configuration for the screenshot service."""
    host: str = "0.0.0.0"
    port: int = 4040
    cache_dir: str = "./cache"

    # Security maximums for the viewport
    max_width: int = 3000
    max_height: int = 3000

    max_cache_size_mb: int = 1000
    max_concurrent_renders: int = 10
    memory_cache_max_entries: int = 256

    render_timeout_ms: int = 30000
    browser_executable: Optional[str] = None

    # Empty list disables the allowlist
    allowed_domains: List[str] = field(default_factory=list)

    log_level: str = "INFO"

    @property
    def max_cache_size_bytes(self) -> int:
        return self.max_cache_size_mb * 1024 * 1024

    @property
    def allowlist_enabled(self) -> bool:
        return len(self.allowed_domains) > 0

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "4040")),
            cache_dir=os.getenv("CACHE_DIR", "./cache"),
            max_width=int(os.getenv("MAX_WIDTH", "3000")),
            max_height=int(os.getenv("MAX_HEIGHT", "3000")),
            max_cache_size_mb=int(os.getenv("MAX_CACHE_SIZE_MB", "1000")),
            max_concurrent_renders=int(os.getenv("MAX_CONCURRENT_REQUESTS", "10")),
            memory_cache_max_entries=int(os.getenv("MEMORY_CACHE_MAX_ENTRIES", "256")),
            render_timeout_ms=int(os.getenv("RENDER_TIMEOUT_MS", "30000")),
            browser_executable=(
                os.getenv("CHROMIUM_EXECUTABLE_PATH")
                or os.getenv("PUPPETEER_EXECUTABLE_PATH")
                or None
            ),
            allowed_domains=_parse_domains(os.getenv("ALLOWED_DOMAINS", "")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
